"""Configuration loading and validation for Masque."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from masque.models import NoiseDistribution, NoiseLevel


class CatalogConfig(BaseModel):
    """Configuration for the template catalog and its weight overrides."""

    data_path: str | None = Field(
        default=None, description="JSON document with extra templates merged at load"
    )
    weights_file: str | None = Field(
        default=None, description="JSON or YAML weight override document"
    )
    weights_json: str | None = Field(default=None, description="Inline weight override JSON")


class IdentityConfig(BaseModel):
    """Configuration for synthetic identity generation."""

    max_attempts: int = Field(default=100, ge=1, description="Retries before giving up")


class NoiseConfig(BaseModel):
    """Default options for noise engines created by the CLI and server."""

    level: NoiseLevel = NoiseLevel.MEDIUM
    distribution: NoiseDistribution = NoiseDistribution.UNIFORM


class ServerConfig(BaseModel):
    """Configuration for the FastAPI server."""

    host: str = "127.0.0.1"
    port: int = 8080


class LoggingConfig(BaseModel):
    """Configuration for logging output."""

    level: str = "info"
    output: str = "stderr"


class MasqueConfig(BaseModel):
    """Top-level Masque configuration."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> MasqueConfig:
    """Load Masque configuration from a YAML file.

    Args:
        path: Path to the YAML config file. If None, uses 'masque.yaml'
              in the current directory, falling back to defaults.

    Returns:
        A validated MasqueConfig instance.
    """
    path = Path("masque.yaml") if path is None else Path(path)

    if path.exists():
        with open(path) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        return MasqueConfig.model_validate(raw)

    return MasqueConfig()
