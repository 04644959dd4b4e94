"""Line-preserving INI editing.

Only the touched line changes; comments, ordering and blank lines survive.
"""

from __future__ import annotations

import logging
import re

from .paths import StorageVolumes
from .types import OpResult

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^\s*\[(.*)\]\s*$")


def _key_of(line: str) -> str | None:
    stripped = line.strip()
    if not stripped or stripped[0] in "#;" or "=" not in stripped:
        return None
    return stripped.split("=", 1)[0].strip()


def _section_bounds(lines: list[str], section: str) -> tuple[int, int] | None:
    """Return (header_index, end_index) of section, end exclusive."""
    start = None
    for i, line in enumerate(lines):
        m = _SECTION_RE.match(line)
        if not m:
            continue
        if start is not None:
            return start, i
        if m.group(1).strip() == section:
            start = i
    if start is None:
        return None
    return start, len(lines)


class IniEditor:
    """Edits INI files on mounted storage."""

    def __init__(self, volumes: StorageVolumes):
        self.volumes = volumes

    def _read(self, path: str) -> list[str]:
        host = self.volumes.to_host(path)
        if not host.exists():
            return []
        return host.read_text(encoding="utf-8").splitlines()

    def _write(self, path: str, lines: list[str]) -> None:
        host = self.volumes.to_host(path)
        host.parent.mkdir(parents=True, exist_ok=True)
        host.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def set_ini_file_value(self, path: str, section: str, key: str, value: str) -> OpResult:
        """Set key=value inside section, creating the key, section or file as needed."""
        try:
            lines = self._read(path)
            bounds = _section_bounds(lines, section)
            if bounds is None:
                if lines and lines[-1].strip():
                    lines.append("")
                lines.extend([f"[{section}]", f"{key}={value}"])
            else:
                start, end = bounds
                for i in range(start + 1, end):
                    if _key_of(lines[i]) == key:
                        lines[i] = f"{key}={value}"
                        break
                else:
                    # Insert after the last non-blank line of the section
                    insert_at = end
                    while insert_at - 1 > start and not lines[insert_at - 1].strip():
                        insert_at -= 1
                    lines.insert(insert_at, f"{key}={value}")
            self._write(path, lines)
        except (OSError, ValueError) as e:
            logger.warning("set-ini-value on %s failed: %s", path, e)
            return OpResult.failure(str(e))
        return OpResult.success(f"[{section}] {key}={value}")

    def set_ini_file_key(self, path: str, section: str, key: str, new_key: str) -> OpResult:
        """Rename key inside section, keeping its value."""
        try:
            lines = self._read(path)
            bounds = _section_bounds(lines, section)
            if bounds is None:
                return OpResult.failure(f"Section not found: {section}")
            start, end = bounds
            for i in range(start + 1, end):
                if _key_of(lines[i]) == key:
                    value = lines[i].split("=", 1)[1].strip()
                    lines[i] = f"{new_key}={value}"
                    break
            else:
                return OpResult.failure(f"Key not found: [{section}] {key}")
            self._write(path, lines)
        except (OSError, ValueError) as e:
            logger.warning("set-ini-key on %s failed: %s", path, e)
            return OpResult.failure(str(e))
        return OpResult.success(f"[{section}] {key} -> {new_key}")
