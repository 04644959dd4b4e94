"""Filesystem primitives used by the interpreter.

Every operation takes volume paths (``sdmc:/...``), maps them through
StorageVolumes and returns an OpResult. Failures such as a missing
source are logged and reported as ok=False; nothing is raised.

A destination ending in "/" means "into this directory".
"""

from __future__ import annotations

import functools
import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from .paths import StorageVolumes
from .types import OpResult


def _best_effort(func: Callable[..., OpResult]) -> Callable[..., OpResult]:
    """Turn OSError/ValueError raised by an operation into a failed OpResult."""

    @functools.wraps(func)
    def wrapper(self: FileOps, *args: str | None) -> OpResult:
        try:
            return func(self, *args)
        except (OSError, ValueError) as e:
            self._logger.warning("%s%s failed: %s", func.__name__, args, e)
            return OpResult.failure(str(e))

    return wrapper


class FileOps:
    """File and directory operations over mounted storage volumes."""

    def __init__(
        self,
        volumes: StorageVolumes,
        mirror_root: str = "sdmc:/",
        logger: logging.Logger | None = None,
    ):
        self.volumes = volumes
        self.mirror_root = mirror_root
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    @_best_effort
    def create_directory(self, path: str) -> OpResult:
        target = self.volumes.to_host(path)
        target.mkdir(parents=True, exist_ok=True)
        return OpResult.success(str(target))

    @_best_effort
    def copy_file_or_directory(self, source: str, destination: str) -> OpResult:
        src = self.volumes.to_host(source)
        if not src.exists():
            return OpResult.failure(f"Source does not exist: {source}")
        target = _copy(src, self.volumes.to_host(destination), into=destination.endswith("/"))
        return OpResult.success(str(target))

    @_best_effort
    def copy_by_pattern(self, pattern: str, destination: str) -> OpResult:
        matches = self.volumes.glob(pattern)
        if not matches:
            return OpResult.failure(f"No matches for pattern: {pattern}")
        dst = self.volumes.to_host(destination)
        for src in matches:
            _copy(src, dst, into=True)
        return OpResult.success(f"copied {len(matches)} item(s)")

    @_best_effort
    def mirror_copy(self, source: str, destination: str | None = None) -> OpResult:
        """Replicate every file under source at the same relative path under destination."""
        src = self.volumes.to_host(source)
        if not src.is_dir():
            return OpResult.failure(f"Mirror source is not a directory: {source}")
        dst = self.volumes.to_host(destination or self.mirror_root)

        count = 0
        for file_path in _iter_files(src):
            target = dst / file_path.relative_to(src)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(file_path, target)
            count += 1
        return OpResult.success(f"mirrored {count} file(s)")

    @_best_effort
    def delete_file_or_directory(self, path: str) -> OpResult:
        target = self.volumes.to_host(path)
        if not target.exists() and not target.is_symlink():
            return OpResult.failure(f"Path does not exist: {path}")
        _remove(target)
        return OpResult.success(str(target))

    @_best_effort
    def delete_by_pattern(self, pattern: str) -> OpResult:
        matches = self.volumes.glob(pattern)
        if not matches:
            return OpResult.failure(f"No matches for pattern: {pattern}")
        for target in matches:
            _remove(target)
        return OpResult.success(f"deleted {len(matches)} item(s)")

    @_best_effort
    def mirror_delete(self, source: str, destination: str | None = None) -> OpResult:
        """Delete the files under destination that mirror source's files.

        Directories left empty by the deletion are pruned; the destination
        root itself is kept.
        """
        src = self.volumes.to_host(source)
        if not src.is_dir():
            return OpResult.failure(f"Mirror source is not a directory: {source}")
        dst = self.volumes.to_host(destination or self.mirror_root)

        count = 0
        for file_path in _iter_files(src):
            target = dst / file_path.relative_to(src)
            if target.is_file() or target.is_symlink():
                target.unlink()
                count += 1

        # Deepest first so parents empty out before they are checked.
        for dir_path in sorted(
            (p for p in src.rglob("*") if p.is_dir()),
            key=lambda p: len(p.parts),
            reverse=True,
        ):
            mirrored = dst / dir_path.relative_to(src)
            if mirrored.is_dir() and not any(mirrored.iterdir()):
                mirrored.rmdir()
        return OpResult.success(f"deleted {count} mirrored file(s)")

    @_best_effort
    def move_file_or_directory(self, source: str, destination: str) -> OpResult:
        src = self.volumes.to_host(source)
        if not src.exists():
            return OpResult.failure(f"Source does not exist: {source}")
        target = _move(src, self.volumes.to_host(destination), into=destination.endswith("/"))
        return OpResult.success(str(target))

    @_best_effort
    def move_by_pattern(self, pattern: str, destination: str) -> OpResult:
        matches = self.volumes.glob(pattern)
        if not matches:
            return OpResult.failure(f"No matches for pattern: {pattern}")
        dst = self.volumes.to_host(destination)
        for src in matches:
            _move(src, dst, into=True)
        return OpResult.success(f"moved {len(matches)} item(s)")


def _iter_files(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())


def _copy(src: Path, dst: Path, into: bool) -> Path:
    target = dst / src.name if into else dst
    if src.is_dir():
        shutil.copytree(src, target, dirs_exist_ok=True)
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, target)
    return target


def _move(src: Path, dst: Path, into: bool) -> Path:
    target = dst / src.name if into else dst
    if target.is_dir() and src.is_dir():
        raise FileExistsError(f"Destination directory exists: {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists() and src.is_file():
        os.replace(src, target)
    else:
        shutil.move(str(src), str(target))
    return target


def _remove(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()
