"""Binary patch primitives.

All patches overwrite bytes in place; the file never shifts. Writing past
the end of the file extends it.
"""

from __future__ import annotations

import logging
import re

from .paths import StorageVolumes
from .types import OpResult

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def parse_hex(data: str) -> bytes:
    """Hex string to bytes; whitespace ignored, case-insensitive.

    Raises:
        ValueError: On odd length, empty input or non-hex characters
    """
    cleaned = _WS_RE.sub("", data)
    if not cleaned:
        raise ValueError("Empty hex data")
    if len(cleaned) % 2:
        raise ValueError(f"Odd-length hex data: {data!r}")
    return bytes.fromhex(cleaned)


def parse_offset(offset: str) -> int:
    text = offset.strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"Invalid offset: {offset!r}")
    return int(text)


def find_offsets(data: bytes, pattern: bytes) -> list[int]:
    """Every offset where pattern starts, overlapping matches included."""
    offsets = []
    pos = data.find(pattern)
    while pos != -1:
        offsets.append(pos)
        pos = data.find(pattern, pos + 1)
    return offsets


class HexEditor:
    """Patches files on mounted storage."""

    def __init__(self, volumes: StorageVolumes):
        self.volumes = volumes

    def _patch(self, path: str, offset: int, payload: bytes) -> None:
        host = self.volumes.to_host(path)
        with open(host, "r+b") as f:
            f.seek(offset)
            f.write(payload)

    def _read(self, path: str) -> bytes:
        return self.volumes.to_host(path).read_bytes()

    def hex_edit_by_offset(self, path: str, offset: str, hex_data: str) -> OpResult:
        try:
            pos = parse_offset(offset)
            payload = parse_hex(hex_data)
            self._patch(path, pos, payload)
        except (OSError, ValueError) as e:
            logger.warning("hex-by-offset on %s failed: %s", path, e)
            return OpResult.failure(str(e))
        return OpResult.success(f"wrote {len(payload)} byte(s) at {pos}")

    def hex_edit_by_custom_offset(
        self, path: str, pattern_hex: str, offset: str, hex_data: str
    ) -> OpResult:
        """Patch at offset bytes after the first occurrence of pattern_hex."""
        try:
            pattern = parse_hex(pattern_hex)
            relative = parse_offset(offset)
            payload = parse_hex(hex_data)
            anchor = self._read(path).find(pattern)
            if anchor == -1:
                return OpResult.failure(f"Pattern not found: {pattern_hex}")
            self._patch(path, anchor + relative, payload)
        except (OSError, ValueError) as e:
            logger.warning("hex-by-custom-offset on %s failed: %s", path, e)
            return OpResult.failure(str(e))
        return OpResult.success(f"wrote {len(payload)} byte(s) at {anchor + relative}")

    def hex_edit_find_replace(
        self, path: str, find_hex: str, replace_hex: str, occurrence: str = "0"
    ) -> OpResult:
        """Overwrite matches of find_hex with replace_hex.

        occurrence "0" patches every match; "n" patches only the n-th (1-based).
        """
        try:
            find = parse_hex(find_hex)
            replacement = parse_hex(replace_hex)
            nth = parse_offset(occurrence)
            offsets = find_offsets(self._read(path), find)
            if not offsets:
                return OpResult.failure(f"Pattern not found: {find_hex}")
            if nth:
                if nth > len(offsets):
                    return OpResult.failure(
                        f"Occurrence {nth} requested, only {len(offsets)} found"
                    )
                offsets = [offsets[nth - 1]]
            for pos in offsets:
                self._patch(path, pos, replacement)
        except (OSError, ValueError) as e:
            logger.warning("hex find/replace on %s failed: %s", path, e)
            return OpResult.failure(str(e))
        return OpResult.success(f"patched {len(offsets)} occurrence(s)")
