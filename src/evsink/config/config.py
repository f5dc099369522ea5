"""Configuration management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

from evsink.core.constants import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_ROTATION_INTERVAL_SECONDS,
    MAX_PAYLOAD_BYTES,
)

# env variable -> config field
_ENV_FIELDS = {
    "EVSINK_DATA_DIR": "data_dir",
    "EVSINK_HOST": "host",
    "EVSINK_PORT": "port",
    "EVSINK_ROTATION_INTERVAL_SECONDS": "rotation_interval_seconds",
    "EVSINK_MAX_PAYLOAD_BYTES": "max_payload_bytes",
    "EVSINK_COMPRESSION_LEVEL": "compression_level",
    "EVSINK_LOG_LEVEL": "log_level",
    "EVSINK_LOG_JSON": "log_json",
}


class SinkConfig(BaseModel):
    """Event sink service configuration."""

    data_dir: Path = Field(
        Path("."),
        description="Directory holding segment files",
    )
    host: str = Field("0.0.0.0", description="HTTP bind address")
    port: int = Field(3000, ge=1, le=65535, description="HTTP port")
    rotation_interval_seconds: float = Field(
        DEFAULT_ROTATION_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between time-based rotations",
    )
    max_payload_bytes: int = Field(
        MAX_PAYLOAD_BYTES,
        ge=1,
        le=MAX_PAYLOAD_BYTES,
        description="Largest accepted event body",
    )
    compression_level: int = Field(
        DEFAULT_COMPRESSION_LEVEL,
        ge=1,
        le=22,
        description="zstd compression level",
    )
    log_level: str = Field("INFO", description="Logging level")
    log_json: bool = Field(True, description="Render logs as JSON (else console)")

    @staticmethod
    def _env_overrides() -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw is not None and raw != "":
                overrides[field_name] = raw
        return overrides

    @classmethod
    def from_env(cls) -> "SinkConfig":
        return cls(**cls._env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SinkConfig":
        """Load a YAML mapping, then apply EVSINK_* environment overrides."""
        with open(path, "r", encoding="utf-8") as f:
            loaded: Optional[Dict[str, Any]] = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls(**{**loaded, **cls._env_overrides()})


__all__ = ["SinkConfig"]
