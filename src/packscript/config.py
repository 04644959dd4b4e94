"""Configuration schema for the packscript interpreter.

Configuration is loaded from .packscript.yml in the working directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

CONFIG_FILE_NAME = ".packscript.yml"

DEFAULT_PROTECTED_FOLDERS = [
    "sdmc:/Nintendo/",
    "sdmc:/emuMMC/",
    "sdmc:/atmosphere/",
    "sdmc:/bootloader/",
    "sdmc:/switch/",
    "sdmc:/config/",
    "sdmc:/",
]

DEFAULT_ULTRA_PROTECTED_FOLDERS = [
    "sdmc:/Nintendo/",
    "sdmc:/emuMMC/",
]


class SafetyConfig(BaseModel):
    """Protected-folder tiers used by the path safety guard."""

    protected_folders: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROTECTED_FOLDERS)
    )
    ultra_protected_folders: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ULTRA_PROTECTED_FOLDERS)
    )
    storage_root: str = "sdmc:/"

    @field_validator("protected_folders", "ultra_protected_folders")
    @classmethod
    def validate_folders(cls, v: list[str]) -> list[str]:
        for folder in v:
            if not folder.endswith("/"):
                raise ValueError(f"Protected folder must end with '/': {folder}")
        return v

    @field_validator("storage_root")
    @classmethod
    def validate_storage_root(cls, v: str) -> str:
        if ":/" not in v:
            raise ValueError(f"storage_root must be a volume root like 'sdmc:/': {v}")
        return v

    @model_validator(mode="after")
    def include_ultra_in_protected(self) -> SafetyConfig:
        # Ultra-protected folders are always protected too.
        for folder in self.ultra_protected_folders:
            if folder not in self.protected_folders:
                self.protected_folders.insert(0, folder)
        return self


class StorageConfig(BaseModel):
    """Mapping of virtual storage volumes to host directories."""

    volumes: dict[str, str] = Field(default_factory=lambda: {"sdmc": "./sdmc"})

    @field_validator("volumes")
    @classmethod
    def validate_volumes(cls, v: dict[str, str]) -> dict[str, str]:
        for name in v:
            if not name or ":" in name or "/" in name:
                raise ValueError(f"Invalid volume name: {name!r}")
        return v


class NetworkConfig(BaseModel):
    """Download behaviour."""

    enabled: bool = True
    timeout_seconds: float = 30.0
    retry_max: int = 3
    user_agent: str = "packscript/1.0"

    @field_validator("retry_max")
    @classmethod
    def validate_retry_max(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry_max must be at least 1")
        return v


class TelemetryConfig(BaseModel):
    """Telemetry and logging configuration."""

    enabled: bool = True
    log_path: str = ".packscript/telemetry.jsonl"
    retention_days: int = 30


class InterpreterConfig(BaseModel):
    """Complete interpreter configuration."""

    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> InterpreterConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def load_from_dir(cls, base_dir: Path | str) -> InterpreterConfig:
        """Load configuration from a directory's .packscript.yml."""
        config_path = Path(base_dir) / CONFIG_FILE_NAME

        if not config_path.exists():
            return cls()

        return cls.load_from_file(config_path)

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if root := os.getenv("PACKSCRIPT_SDMC_ROOT"):
            self.storage.volumes["sdmc"] = root

        if os.getenv("PACKSCRIPT_DISABLE_NETWORK") == "1":
            self.network.enabled = False
        if timeout := os.getenv("PACKSCRIPT_NETWORK_TIMEOUT_SECONDS"):
            self.network.timeout_seconds = float(timeout)
        if retries := os.getenv("PACKSCRIPT_RETRY_MAX"):
            self.network.retry_max = max(1, int(retries))

        if log_path := os.getenv("PACKSCRIPT_TELEMETRY_PATH"):
            self.telemetry.log_path = log_path
        if os.getenv("PACKSCRIPT_TELEMETRY_DISABLED") == "1":
            self.telemetry.enabled = False


def load_config(base_dir: Path | str) -> InterpreterConfig:
    """
    Load configuration for a working directory.

    Args:
        base_dir: Directory that may contain .packscript.yml

    Returns:
        Loaded and validated configuration
    """
    config = InterpreterConfig.load_from_dir(base_dir)
    config.apply_env_overrides()
    return config
