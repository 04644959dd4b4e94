"""Core data types for the packscript interpreter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

Command = list[str]
CommandList = list[Command]

# Outcome statuses recorded per command
EXECUTED = "executed"
SKIPPED = "skipped"
BLOCKED = "blocked"
UNKNOWN = "unknown"
INVALID_OPERAND = "invalid_operand"


class PowerMode(IntEnum):
    """Power transitions requested by terminal commands."""

    NORMAL = 0
    REBOOT = 1


@dataclass
class OpResult:
    """Outcome of a collaborator operation.

    Collaborators never raise on bad input; they return ok=False instead.
    """

    ok: bool
    detail: str = ""

    @classmethod
    def success(cls, detail: str = "") -> OpResult:
        return cls(ok=True, detail=detail)

    @classmethod
    def failure(cls, detail: str) -> OpResult:
        return cls(ok=False, detail=detail)


@dataclass
class CommandOutcome:
    """What happened to a single command of a script run."""

    index: int
    verb: str
    status: str  # "executed", "skipped", "blocked", "unknown", "invalid_operand"
    result: OpResult | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"index": self.index, "verb": self.verb, "status": self.status}
        if self.result is not None:
            data["ok"] = self.result.ok
            data["detail"] = self.result.detail
        return data


@dataclass
class RunReport:
    """Result of one interpreter run."""

    run_id: str
    outcomes: list[CommandOutcome] = field(default_factory=list)
    power_mode: PowerMode | None = None

    @property
    def powered_off(self) -> bool:
        return self.power_mode is not None

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def failures(self) -> list[CommandOutcome]:
        """Executed commands whose collaborator reported a failure."""
        return [
            o for o in self.outcomes
            if o.status == EXECUTED and o.result is not None and not o.result.ok
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "power_mode": self.power_mode.name.lower() if self.power_mode is not None else None,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
