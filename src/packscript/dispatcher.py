"""Command interpreter.

Executes a tokenized script strictly in order. For each command:

1. Empty commands are skipped.
2. If a json_data document is active, every token goes through the
   placeholder resolver.
3. Commands with fewer tokens than their verb requires are skipped.
4. Destructive verbs are refused when the path safety guard flags the
   source path.
5. Everything else is routed through the verb table to a collaborator.

Failures never abort the run; reboot and shutdown end it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import InterpreterConfig
from .fsops import FileOps
from .hexcodec import (
    HexEncodingError,
    ascii_to_hex,
    decimal_to_hex,
    decimal_to_reversed_hex,
    pad_to_equal_length,
)
from .hexedit import HexEditor
from .ini import IniEditor
from .network import Downloader, unzip_file
from .paths import StorageVolumes, preprocess_path, preprocess_url, remove_quotes
from .placeholders import PlaceholderResolver
from .power import HostPowerController, PowerController
from .safe_paths import PathSafetyGuard
from .telemetry import TelemetrySink
from .types import (
    BLOCKED,
    EXECUTED,
    INVALID_OPERAND,
    SKIPPED,
    UNKNOWN,
    CommandList,
    CommandOutcome,
    OpResult,
    PowerMode,
    RunReport,
)

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """The I/O services commands are delegated to."""

    volumes: StorageVolumes
    files: FileOps
    ini: IniEditor
    hex: HexEditor
    downloader: Downloader
    power: PowerController

    @classmethod
    def from_config(
        cls, config: InterpreterConfig, base_dir: Path | str | None = None
    ) -> Collaborators:
        volumes = StorageVolumes(config.storage.volumes, base_dir=base_dir)
        return cls(
            volumes=volumes,
            files=FileOps(volumes, mirror_root=config.safety.storage_root),
            ini=IniEditor(volumes),
            hex=HexEditor(volumes),
            downloader=Downloader(config.network, volumes),
            power=HostPowerController(volumes),
        )


@dataclass
class Session:
    """State shared by the commands of one run."""

    document_path: str | None = None


Handler = Callable[[Collaborators, list[str], Session], OpResult]


@dataclass(frozen=True)
class Verb:
    name: str
    min_tokens: int
    handler: Handler
    guarded: bool = False
    power_mode: PowerMode | None = None


VERBS: dict[str, Verb] = {}


def verb(
    *names: str,
    min_tokens: int,
    guarded: bool = False,
    power_mode: PowerMode | None = None,
) -> Callable[[Handler], Handler]:
    """Register a handler under one or more verb names."""

    def register(handler: Handler) -> Handler:
        for name in names:
            VERBS[name] = Verb(name, min_tokens, handler, guarded, power_mode)
        return handler

    return register


def _occurrence(args: list[str]) -> str:
    return remove_quotes(args[4]) if len(args) >= 5 else "0"


@verb("json_data", min_tokens=2)
def _json_data(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    session.document_path = preprocess_path(args[1])
    return OpResult.success(session.document_path)


@verb("make", "mkdir", min_tokens=2)
def _make(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.files.create_directory(preprocess_path(args[1]))


@verb("copy", "cp", min_tokens=3)
def _copy(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    source, destination = preprocess_path(args[1]), preprocess_path(args[2])
    if "*" in source:
        return tools.files.copy_by_pattern(source, destination)
    return tools.files.copy_file_or_directory(source, destination)


@verb("mirror_copy", "mirror_cp", min_tokens=2)
def _mirror_copy(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    if len(args) >= 3:
        return tools.files.mirror_copy(preprocess_path(args[1]), preprocess_path(args[2]))
    return tools.files.mirror_copy(preprocess_path(args[1]))


@verb("delete", "del", min_tokens=2, guarded=True)
def _delete(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    source = preprocess_path(args[1])
    if "*" in source:
        return tools.files.delete_by_pattern(source)
    return tools.files.delete_file_or_directory(source)


@verb("mirror_delete", "mirror_del", min_tokens=2)
def _mirror_delete(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    if len(args) >= 3:
        return tools.files.mirror_delete(preprocess_path(args[1]), preprocess_path(args[2]))
    return tools.files.mirror_delete(preprocess_path(args[1]))


@verb("rename", "move", "mv", min_tokens=3, guarded=True)
def _move(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    source, destination = preprocess_path(args[1]), preprocess_path(args[2])
    if "*" in source:
        return tools.files.move_by_pattern(source, destination)
    return tools.files.move_file_or_directory(source, destination)


@verb("set-ini-val", "set-ini-value", min_tokens=5)
def _set_ini_value(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.ini.set_ini_file_value(
        preprocess_path(args[1]),
        remove_quotes(args[2]),
        remove_quotes(args[3]),
        " ".join(args[4:]),
    )


@verb("set-ini-key", min_tokens=5)
def _set_ini_key(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.ini.set_ini_file_key(
        preprocess_path(args[1]),
        remove_quotes(args[2]),
        remove_quotes(args[3]),
        " ".join(args[4:]),
    )


@verb("hex-by-offset", min_tokens=4)
def _hex_by_offset(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.hex.hex_edit_by_offset(
        preprocess_path(args[1]), remove_quotes(args[2]), remove_quotes(args[3])
    )


@verb("hex-by-custom-offset", min_tokens=5)
def _hex_by_custom_offset(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.hex.hex_edit_by_custom_offset(
        preprocess_path(args[1]),
        remove_quotes(args[2]),
        remove_quotes(args[3]),
        remove_quotes(args[4]),
    )


@verb("hex-by-swap", min_tokens=4)
def _hex_by_swap(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.hex.hex_edit_find_replace(
        preprocess_path(args[1]), remove_quotes(args[2]), remove_quotes(args[3]), _occurrence(args)
    )


@verb("hex-by-string", min_tokens=4)
def _hex_by_string(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    find, replacement = pad_to_equal_length(
        ascii_to_hex(remove_quotes(args[2])), ascii_to_hex(remove_quotes(args[3]))
    )
    return tools.hex.hex_edit_find_replace(
        preprocess_path(args[1]), find, replacement, _occurrence(args)
    )


@verb("hex-by-decimal", min_tokens=4)
def _hex_by_decimal(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.hex.hex_edit_find_replace(
        preprocess_path(args[1]),
        decimal_to_hex(remove_quotes(args[2])),
        decimal_to_hex(remove_quotes(args[3])),
        _occurrence(args),
    )


@verb("hex-by-rdecimal", min_tokens=4)
def _hex_by_rdecimal(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.hex.hex_edit_find_replace(
        preprocess_path(args[1]),
        decimal_to_reversed_hex(remove_quotes(args[2])),
        decimal_to_reversed_hex(remove_quotes(args[3])),
        _occurrence(args),
    )


@verb("download", min_tokens=3)
def _download(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return tools.downloader.download_file(preprocess_url(args[1]), preprocess_path(args[2]))


@verb("unzip", min_tokens=3)
def _unzip(tools: Collaborators, args: list[str], session: Session) -> OpResult:
    return unzip_file(tools.volumes, preprocess_path(args[1]), preprocess_path(args[2]))


def _power_off(mode: PowerMode) -> Handler:
    def handler(tools: Collaborators, args: list[str], session: Session) -> OpResult:
        tools.power.unmount_all()
        tools.power.power_off(mode)
        return OpResult.success(mode.name.lower())

    return handler


verb("reboot", min_tokens=1, power_mode=PowerMode.REBOOT)(_power_off(PowerMode.REBOOT))
verb("shutdown", min_tokens=1, power_mode=PowerMode.NORMAL)(_power_off(PowerMode.NORMAL))


@dataclass
class CommandDispatcher:
    """
    Runs command lists against a set of collaborators.

    Each execute() call gets its own Session, so one dispatcher can run
    several scripts one after another without state leaking between them.
    """

    tools: Collaborators
    guard: PathSafetyGuard = field(default_factory=PathSafetyGuard)
    resolver: PlaceholderResolver | None = None
    telemetry: TelemetrySink | None = None
    verbs: dict[str, Verb] = field(default_factory=lambda: dict(VERBS))

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = PlaceholderResolver.for_volumes(self.tools.volumes)

    @classmethod
    def from_config(
        cls,
        config: InterpreterConfig,
        base_dir: Path | str | None = None,
        tools: Collaborators | None = None,
    ) -> CommandDispatcher:
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        telemetry_path = Path(config.telemetry.log_path)
        if not telemetry_path.is_absolute():
            telemetry_path = base / telemetry_path
        return cls(
            tools=tools or Collaborators.from_config(config, base_dir=base),
            guard=PathSafetyGuard.from_config(config.safety),
            telemetry=TelemetrySink(enabled=config.telemetry.enabled, path=telemetry_path),
        )

    def _record(self, report: RunReport, outcome: CommandOutcome, **extra: Any) -> None:
        report.outcomes.append(outcome)
        if self.telemetry is not None:
            self.telemetry.log_command(report.run_id, outcome, **extra)

    def _resolve_tokens(self, command: list[str], session: Session) -> list[str]:
        if session.document_path is None or self.resolver is None:
            return list(command)
        return [self.resolver.resolve(token, session.document_path) for token in command]

    def execute(self, commands: CommandList) -> RunReport:
        """
        Execute commands in order.

        Args:
            commands: Tokenized commands; token 0 of each is the verb

        Returns:
            Per-command outcomes; power_mode is set if the run ended with
            reboot or shutdown
        """
        report = RunReport(run_id=uuid.uuid4().hex[:12])
        session = Session()
        if self.telemetry is not None:
            self.telemetry.log_run_started(report.run_id, len(commands))

        for index, raw in enumerate(commands):
            if not raw:
                continue

            name = raw[0]
            args = self._resolve_tokens(raw, session)
            entry = self.verbs.get(name)

            if entry is None:
                logger.debug("command %d: unknown verb %r", index, name)
                self._record(report, CommandOutcome(index, name, UNKNOWN))
                continue

            if len(args) < entry.min_tokens:
                logger.debug("command %d: %s needs %d tokens, got %d", index, name, entry.min_tokens, len(args))
                self._record(report, CommandOutcome(index, name, SKIPPED))
                continue

            if entry.guarded:
                source = preprocess_path(args[1])
                if self.guard.is_dangerous(source):
                    logger.warning("command %d: refusing %s on protected path %s", index, name, source)
                    self._record(report, CommandOutcome(index, name, BLOCKED), path=source)
                    continue

            try:
                result = entry.handler(self.tools, args, session)
            except HexEncodingError as e:
                logger.warning("command %d: %s", index, e)
                self._record(report, CommandOutcome(index, name, INVALID_OPERAND), detail=str(e))
                continue

            self._record(report, CommandOutcome(index, name, EXECUTED, result))

            if entry.power_mode is not None:
                report.power_mode = entry.power_mode
                break

        if self.telemetry is not None:
            self.telemetry.log_run_completed(report)
        return report
