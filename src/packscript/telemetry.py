"""Run telemetry for the interpreter.

Writes JSONL events, one line per event:
  {"timestamp": <float>, "run_id": <str>, "type": <str>, "data": <object>}

Event types:
- run_started: script run begins
- command_executed: command reached its collaborator
- command_skipped: too few tokens, unknown verb or invalid operand
- command_blocked: path safety guard refused a destructive command
- run_completed: run ends with status "completed" or "powered_off"
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .types import BLOCKED, EXECUTED, INVALID_OPERAND, SKIPPED, UNKNOWN, CommandOutcome, RunReport

COMMAND_EVENTS = {
    EXECUTED: "command_executed",
    SKIPPED: "command_skipped",
    UNKNOWN: "command_skipped",
    INVALID_OPERAND: "command_skipped",
    BLOCKED: "command_blocked",
}

_SKIP_REASONS = {SKIPPED: "arity", UNKNOWN: "unknown", INVALID_OPERAND: "invalid_operand"}


@dataclass(frozen=True)
class TelemetrySink:
    """Appends run events to a JSONL file; a disabled sink writes nothing."""

    enabled: bool
    path: Path

    def log(self, run_id: str, event_type: str, data: dict[str, Any]) -> None:
        if not self.enabled:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        entry = {
            "timestamp": time.time(),
            "run_id": run_id,
            "type": event_type,
            "data": data,
        }
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def log_run_started(self, run_id: str, commands: int) -> None:
        self.log(run_id, "run_started", {"commands": commands})

    def log_command(self, run_id: str, outcome: CommandOutcome, **extra: Any) -> None:
        """Record one command outcome.

        Skipped outcomes carry a "reason"; blocked ones the refused "path"
        (passed through extra).
        """
        data: dict[str, Any] = {"index": outcome.index, "verb": outcome.verb}
        if outcome.status in _SKIP_REASONS:
            data["reason"] = _SKIP_REASONS[outcome.status]
        if outcome.result is not None:
            data["ok"] = outcome.result.ok
            data["detail"] = outcome.result.detail
        data.update(extra)
        self.log(run_id, COMMAND_EVENTS[outcome.status], data)

    def log_run_completed(self, report: RunReport) -> None:
        self.log(
            report.run_id,
            "run_completed",
            {
                "status": "powered_off" if report.powered_off else "completed",
                "executed": report.count(EXECUTED),
                "skipped": report.count(SKIPPED) + report.count(UNKNOWN) + report.count(INVALID_OPERAND),
                "blocked": report.count(BLOCKED),
                "failed": len(report.failures),
                "power_mode": report.power_mode.name.lower() if report.power_mode is not None else None,
            },
        )


def prune_telemetry_file(telemetry_path: Path, retention_days: int) -> None:
    """Drop the telemetry file once its last write is older than retention_days."""
    if retention_days <= 0:
        return
    try:
        if telemetry_path.exists() and telemetry_path.stat().st_mtime < time.time() - retention_days * 86400:
            telemetry_path.unlink(missing_ok=True)
    except OSError:
        # Telemetry never fails a run.
        return
