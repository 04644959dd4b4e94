"""Global pytest configuration for hermetic test runs."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from packscript.config import InterpreterConfig
from packscript.dispatcher import Collaborators, CommandDispatcher
from packscript.paths import StorageVolumes


def pytest_sessionstart(session):  # noqa: ARG001
    # Prevent accidental outbound network during tests (integration/unit).
    os.environ.setdefault("PACKSCRIPT_DISABLE_NETWORK", "1")


@pytest.fixture
def sdmc(tmp_path: Path) -> Path:
    """Host directory standing in for the SD card."""
    root = tmp_path / "sdmc"
    root.mkdir()
    return root


@pytest.fixture
def volumes(sdmc: Path) -> StorageVolumes:
    return StorageVolumes({"sdmc": sdmc})


@pytest.fixture
def config(sdmc: Path) -> InterpreterConfig:
    cfg = InterpreterConfig()
    cfg.storage.volumes["sdmc"] = str(sdmc)
    cfg.telemetry.enabled = False
    cfg.network.enabled = False
    return cfg


@pytest.fixture
def tools(config: InterpreterConfig, tmp_path: Path) -> Collaborators:
    return Collaborators.from_config(config, base_dir=tmp_path)


@pytest.fixture
def dispatcher(config: InterpreterConfig, tools: Collaborators, tmp_path: Path) -> CommandDispatcher:
    return CommandDispatcher.from_config(config, base_dir=tmp_path, tools=tools)
