from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class StatusWindow:
    seconds: float


def _iter_events(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    events: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if not ln:
                continue
            try:
                events.append(json.loads(ln))
            except json.JSONDecodeError:
                continue
    return events


def compute_status(telemetry_path: Path, *, window: StatusWindow | None = None) -> dict[str, Any]:
    """Summarize recent script runs from telemetry.jsonl (best-effort)."""
    window = window or StatusWindow(seconds=3600.0)
    cutoff = time.time() - float(window.seconds)

    events = _iter_events(telemetry_path)
    recent = [e for e in events if float(e.get("timestamp", 0.0) or 0.0) >= cutoff]

    def _of(event_type: str) -> list[dict[str, Any]]:
        return [e for e in recent if e.get("type") == event_type]

    executed = _of("command_executed")
    failed = [e for e in executed if not (e.get("data") or {}).get("ok", False)]
    completed = _of("run_completed")
    powered_off = [e for e in completed if (e.get("data") or {}).get("status") == "powered_off"]

    # Blocked paths are the interesting ones to surface.
    blocked_paths = sorted({
        str((e.get("data") or {}).get("path"))
        for e in _of("command_blocked")
        if (e.get("data") or {}).get("path")
    })

    last_run = next((e for e in reversed(events) if e.get("type") == "run_completed"), None)

    return {
        "window_seconds": window.seconds,
        "telemetry_path": str(telemetry_path),
        "runs": len(_of("run_started")),
        "runs_powered_off": len(powered_off),
        "commands_executed": len(executed),
        "commands_failed": len(failed),
        "commands_skipped": len(_of("command_skipped")),
        "commands_blocked": len(_of("command_blocked")),
        "failure_rate": (len(failed) / len(executed)) if executed else None,
        "blocked_paths": blocked_paths,
        "last_run": last_run,
    }
