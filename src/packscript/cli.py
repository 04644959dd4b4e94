"""Command-line interface for packscript.

Commands:
- packscript run <script>: Execute a script or a package section
- packscript check-path <path>...: Ask the safety guard about paths
- packscript encode <mode> <value>: Show the hex a literal operand becomes
- packscript init <dir>: Write a default .packscript.yml
- packscript status <dir>: Show recent run metrics from telemetry
- packscript telemetry tail <dir>: Print recent telemetry events
"""

from __future__ import annotations

import json
import logging
import sys
from collections import deque
from pathlib import Path

import click
from pydantic import ValidationError

from . import __version__
from .config import CONFIG_FILE_NAME, InterpreterConfig, load_config
from .dispatcher import CommandDispatcher
from .hexcodec import HexEncodingError, ascii_to_hex, decimal_to_hex, decimal_to_reversed_hex
from .safe_paths import PathSafetyGuard
from .script import load_script
from .status import StatusWindow, compute_status
from .telemetry import prune_telemetry_file
from .types import BLOCKED, EXECUTED, INVALID_OPERAND, SKIPPED, UNKNOWN

ENCODERS = {
    "ascii": ascii_to_hex,
    "decimal": decimal_to_hex,
    "rdecimal": decimal_to_reversed_hex,
}


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)


def _load(base_dir: Path, config: str | None) -> InterpreterConfig:
    try:
        if config:
            cfg = InterpreterConfig.load_from_file(config)
            cfg.apply_env_overrides()
            return cfg
        return load_config(base_dir)
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


@click.group()
@click.version_option(version=__version__, prog_name="packscript")
@click.option("--verbose", "-v", is_flag=True, help="Log collaborator diagnostics.")
def cli(verbose: bool) -> None:
    """packscript - run package scripts against mounted storage."""
    _configure_logging(verbose)


@cli.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.option("--section", "-s", help="Package section to run (default: first).")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False),
    help="Host directory backing the sdmc:/ volume.",
)
@click.option("--no-telemetry", is_flag=True, help="Don't write telemetry events.")
@click.option("--verbose", "-v", is_flag=True, help="Log collaborator diagnostics.")
@click.option(
    "--format",
    "-f",
    "format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
def run(
    script: str,
    section: str | None,
    config: str | None,
    root: str | None,
    no_telemetry: bool,
    verbose: bool,
    format: str,
) -> None:
    """Execute a script.

    Example:
        packscript run package.ini --section "Install theme" --root ./sdcard
    """
    if verbose:
        _configure_logging(True)
    base_dir = Path.cwd()
    cfg = _load(base_dir, config)
    if root:
        cfg.storage.volumes["sdmc"] = str(Path(root).resolve())
    if no_telemetry:
        cfg.telemetry.enabled = False

    try:
        commands = load_script(script, section=section)
    except KeyError as e:
        raise click.ClickException(f"Section not found: {section}") from e
    except ValueError as e:
        raise click.ClickException(f"Cannot parse script: {e}") from e

    dispatcher = CommandDispatcher.from_config(cfg, base_dir=base_dir)
    if dispatcher.telemetry is not None:
        prune_telemetry_file(dispatcher.telemetry.path, cfg.telemetry.retention_days)

    report = dispatcher.execute(commands)

    if format == "json":
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    for outcome in report.outcomes:
        if outcome.status == EXECUTED and outcome.result is not None:
            mark = "✓" if outcome.result.ok else "✗"
            click.echo(f"{mark} [{outcome.index}] {outcome.verb}: {outcome.result.detail}")
        else:
            click.echo(f"- [{outcome.index}] {outcome.verb}: {outcome.status}")

    click.echo()
    click.echo(
        f"Run {report.run_id}: {report.count(EXECUTED)} executed, "
        f"{len(report.failures)} failed, "
        f"{report.count(SKIPPED) + report.count(UNKNOWN) + report.count(INVALID_OPERAND)} skipped, "
        f"{report.count(BLOCKED)} blocked"
    )
    if report.power_mode is not None:
        click.echo(f"Power transition requested: {report.power_mode.name.lower()}")


@cli.command("check-path")
@click.argument("paths", nargs=-1, required=True)
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def check_path(paths: tuple[str, ...], config: str | None) -> None:
    """Report whether delete/move would be refused on each path.

    Exits 1 if any path is dangerous.
    """
    guard = PathSafetyGuard.from_config(_load(Path.cwd(), config).safety)
    dangerous = False
    for path in paths:
        if guard.is_dangerous(path):
            dangerous = True
            click.echo(f"DANGEROUS  {path}")
        else:
            click.echo(f"ok         {path}")
    sys.exit(1 if dangerous else 0)


@cli.command()
@click.argument("mode", type=click.Choice(sorted(ENCODERS)))
@click.argument("value")
def encode(mode: str, value: str) -> None:
    """Print the hex a hex-by-string/decimal/rdecimal operand becomes."""
    try:
        click.echo(ENCODERS[mode](value))
    except HexEncodingError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("base_dir", type=click.Path(exists=True, file_okay=False), default=".")
def init(base_dir: str) -> None:
    """Write a default configuration file."""
    config_path = Path(base_dir) / CONFIG_FILE_NAME

    if config_path.exists():
        click.echo(f"Configuration already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    default_config = """# packscript configuration

storage:
  volumes:
    sdmc: ./sdmc

safety:
  storage_root: "sdmc:/"
  ultra_protected_folders:
    - "sdmc:/Nintendo/"
    - "sdmc:/emuMMC/"
  protected_folders:
    - "sdmc:/Nintendo/"
    - "sdmc:/emuMMC/"
    - "sdmc:/atmosphere/"
    - "sdmc:/bootloader/"
    - "sdmc:/switch/"
    - "sdmc:/config/"
    - "sdmc:/"

network:
  enabled: true
  timeout_seconds: 30
  retry_max: 3

telemetry:
  enabled: true
  log_path: .packscript/telemetry.jsonl
  retention_days: 30
"""

    config_path.write_text(default_config)
    click.echo(f"✓ Created configuration: {config_path}")


@cli.command()
@click.argument("base_dir", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option(
    "--format",
    "-f",
    "format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
@click.option(
    "--window-minutes",
    type=int,
    default=60,
    show_default=True,
    help="Metrics window (best-effort from telemetry).",
)
def status(base_dir: str, config: str | None, format: str, window_minutes: int) -> None:
    """Show recent run metrics from telemetry."""
    base = Path(base_dir).resolve()
    cfg = _load(base, config)

    telemetry_path = base / cfg.telemetry.log_path
    st = compute_status(telemetry_path, window=StatusWindow(seconds=max(1, window_minutes) * 60.0))

    if format == "json":
        click.echo(json.dumps(st, indent=2))
        return

    click.echo(f"Telemetry: {telemetry_path}")
    click.echo(f"Window: {window_minutes} minutes")
    click.echo(f"Runs: {st['runs']} ({st['runs_powered_off']} ended in power transition)")
    click.echo(f"Commands executed: {st['commands_executed']}")
    click.echo(f"Commands failed: {st['commands_failed']}")
    click.echo(f"Commands skipped: {st['commands_skipped']}")
    click.echo(f"Commands blocked: {st['commands_blocked']}")
    for path in st["blocked_paths"]:
        click.echo(f"  - {path}")

    last = st.get("last_run") or {}
    if last:
        click.echo()
        click.echo(f"Last run: run_id={last.get('run_id')} status={(last.get('data') or {}).get('status')}")


@cli.group()
def telemetry() -> None:
    """Telemetry utilities."""


@telemetry.command("tail")
@click.argument("base_dir", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option(
    "--lines",
    "-n",
    type=int,
    default=50,
    show_default=True,
    help="Number of telemetry lines to show.",
)
def telemetry_tail(base_dir: str, config: str | None, lines: int) -> None:
    """Print the last N telemetry events."""
    base = Path(base_dir).resolve()
    cfg = _load(base, config)

    telemetry_path = base / cfg.telemetry.log_path

    if not telemetry_path.exists():
        raise click.ClickException(f"Telemetry file not found: {telemetry_path}")

    with open(telemetry_path, encoding="utf-8") as f:
        tail = deque(f, maxlen=max(0, lines))

    for ln in tail:
        click.echo(ln, nl=False)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
