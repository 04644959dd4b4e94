"""Power-state control for terminal script commands."""

from __future__ import annotations

import logging
from typing import Protocol

from .paths import StorageVolumes
from .types import PowerMode

logger = logging.getLogger(__name__)


class PowerController(Protocol):
    def unmount_all(self) -> None: ...

    def power_off(self, mode: PowerMode) -> None: ...


class HostPowerController:
    """Host-side stand-in for the console's power service.

    Unmounting detaches every storage volume; the requested transition is
    recorded so the caller (the CLI) can act on it once the run ends.
    """

    def __init__(self, volumes: StorageVolumes):
        self.volumes = volumes
        self.requested: PowerMode | None = None

    def unmount_all(self) -> None:
        logger.info("unmounting volumes: %s", ", ".join(self.volumes.names))
        self.volumes.unmount_all()

    def power_off(self, mode: PowerMode) -> None:
        logger.info("power transition requested: %s", mode.name.lower())
        self.requested = mode
