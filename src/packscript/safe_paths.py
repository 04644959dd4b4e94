"""Path safety checks.

Two concerns live here:
- PathSafetyGuard decides whether a script path is too dangerous for a
  destructive command (delete/move) to touch.
- safe_resolve keeps archive members inside their extraction root.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .config import DEFAULT_PROTECTED_FOLDERS, DEFAULT_ULTRA_PROTECTED_FOLDERS, SafetyConfig

# Wildcards placed directly at a protected root
DANGEROUS_COMBINATION_PATTERNS = ("*", "*/")

# Parent traversal and home reference
DANGEROUS_PATTERNS = ("..", "~")


def _segments(relative_path: str) -> list[str]:
    return [s for s in relative_path.split("/") if s]


class PathSafetyGuard:
    """Pure, stateless predicate over script paths.

    Protected folders come in two tiers. Anything under an ultra-protected
    folder is always dangerous. Protected folders themselves are dangerous,
    as are wildcards at their root and traversal/home segments below them;
    ordinary subpaths stay operable.
    """

    def __init__(
        self,
        protected_folders: Iterable[str] | None = None,
        ultra_protected_folders: Iterable[str] | None = None,
        storage_root: str = "sdmc:/",
    ):
        if protected_folders is None:
            protected_folders = DEFAULT_PROTECTED_FOLDERS
        if ultra_protected_folders is None:
            ultra_protected_folders = DEFAULT_ULTRA_PROTECTED_FOLDERS
        self.protected_folders = tuple(protected_folders)
        self.ultra_protected_folders = tuple(ultra_protected_folders)
        self.storage_root = storage_root

    @classmethod
    def from_config(cls, config: SafetyConfig) -> PathSafetyGuard:
        return cls(
            protected_folders=config.protected_folders,
            ultra_protected_folders=config.ultra_protected_folders,
            storage_root=config.storage_root,
        )

    def is_dangerous(self, path: str) -> bool:
        """Return True if a destructive operation on path must be refused."""
        for folder in self.ultra_protected_folders:
            if path.startswith(folder):
                return True

        for folder in self.protected_folders:
            if path == folder:
                return True

            if path.startswith(folder):
                for segment in _segments(path[len(folder):]):
                    if any(p in segment for p in DANGEROUS_PATTERNS):
                        return True

            for combo in DANGEROUS_COMBINATION_PATTERNS:
                if path == folder + combo:
                    return True

        if path.startswith(self.storage_root):
            for segment in _segments(path[len(self.storage_root):]):
                if segment in DANGEROUS_PATTERNS:
                    return True

        # Wildcard inside the volume root itself, e.g. "*:/"
        root_end = path.find(":/")
        if root_end != -1 and "*" in path[: root_end + 2]:
            return True

        return any(p in path for p in DANGEROUS_PATTERNS)


def safe_resolve(root: Path, rel_path: str) -> Path:
    """Resolve rel_path under root, refusing anything that escapes it."""
    # Normalize root to avoid false "escape" on platforms where `resolve()`
    # canonicalizes paths (e.g., macOS /var -> /private/var).
    root = root.resolve()
    if rel_path.startswith("/") or rel_path.startswith("\\"):
        raise ValueError("Absolute paths not allowed")
    p = (root / rel_path).resolve()
    if root != p and root not in p.parents:
        raise ValueError("Path escapes extraction root")
    return p
