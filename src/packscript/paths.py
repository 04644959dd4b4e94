"""Path and URL preprocessing plus virtual storage volumes.

Scripts address storage through volume paths such as ``sdmc:/switch/x``.
StorageVolumes maps each volume to a host directory. Paths without a
volume prefix are refused; scripts never reach the host filesystem directly.
"""

from __future__ import annotations

import glob
import re
from pathlib import Path

_VOLUME_RE = re.compile(r"^([A-Za-z0-9_\-]+):/(.*)$", re.DOTALL)


def remove_quotes(token: str) -> str:
    """Strip one pair of matching surrounding quotes."""
    if len(token) >= 2 and token[0] == token[-1] and token[0] in {"'", '"'}:
        return token[1:-1]
    return token


def preprocess_path(token: str) -> str:
    """Normalize a script path token: unquote, trim, collapse repeated slashes."""
    path = remove_quotes(token.strip()).strip()
    m = _VOLUME_RE.match(path)
    if m:
        return f"{m.group(1)}:/" + re.sub(r"/{2,}", "/", m.group(2).lstrip("/"))
    return re.sub(r"/{2,}", "/", path)


def preprocess_url(token: str) -> str:
    return remove_quotes(token.strip()).strip()


def split_volume(path: str) -> tuple[str | None, str]:
    """Split "vol:/rest" into ("vol", "rest"); host paths give (None, path)."""
    m = _VOLUME_RE.match(path)
    if not m:
        return None, path
    return m.group(1), m.group(2)


class StorageVolumes:
    """Mounted storage volumes, keyed by name."""

    def __init__(self, volumes: dict[str, str | Path], base_dir: Path | str | None = None):
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        self._mounts: dict[str, Path] = {}
        for name, root in volumes.items():
            root_path = Path(root)
            if not root_path.is_absolute():
                root_path = base / root_path
            self._mounts[name] = root_path

    @property
    def names(self) -> list[str]:
        return sorted(self._mounts)

    def is_mounted(self, name: str) -> bool:
        return name in self._mounts

    def root(self, name: str) -> Path:
        if name not in self._mounts:
            raise ValueError(f"Volume not mounted: {name}")
        return self._mounts[name]

    def to_host(self, path: str) -> Path:
        """Map a script path to a host path.

        Raises:
            ValueError: If the path has no volume prefix or names a volume
                that is not mounted
        """
        volume, rest = split_volume(path)
        if volume is None:
            raise ValueError(f"Path is not on a mounted volume: {path}")
        root = self.root(volume)
        return root / rest if rest else root

    def glob(self, pattern: str) -> list[Path]:
        """Expand a wildcard script path into sorted host paths."""
        host = str(self.to_host(pattern))
        if pattern.endswith("/"):
            host += "/"
        return sorted(Path(p) for p in glob.glob(host, include_hidden=True))

    def unmount_all(self) -> None:
        self._mounts.clear()
