"""Simulation settings, optionally loaded from a YAML file.

Example ``riverflow.yaml``:

    heavy_rainfall_mm: 12.5
    warning_percent: 75
    precision: 2
    log_level: INFO
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError


class SimulationConfig(BaseModel):
    """Tunable thresholds. Defaults reproduce the standard model."""

    model_config = ConfigDict(extra="forbid")

    heavy_rainfall_mm: float = Field(10.0, ge=0)
    pre_release_fraction: float = Field(0.05, ge=0, le=1)
    warning_percent: float = Field(80.0, ge=0)
    overflow_percent: float = Field(100.0, ge=0)
    precision: int = Field(3, ge=0, le=12)
    log_level: str = "WARNING"


def load_config(path: str | Path) -> SimulationConfig:
    """Load settings from YAML. An empty file gives the defaults."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if data is None:
        return SimulationConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping, got {type(data).__name__}")

    try:
        return SimulationConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from e
