"""Engine configuration model and YAML loading."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from urdfval.errors import ConfigError


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # Discovery
    robot_name: str | None = None
    discovery_timeout: float = Field(default=30.0, gt=0)
    discovery_poll_interval: float = Field(default=0.5, gt=0)
    settle_delay: float = Field(default=0.5, ge=0)

    # Continuous validation
    continuous_validation: bool = True
    validation_interval: float = Field(default=0.1, gt=0)

    # Self-collision (meters)
    penetration_threshold: float = Field(default=0.0001, ge=0)
    collision_error_depth: float = Field(default=0.01, ge=0)

    # Gap (meters)
    max_allowed_gap: float = Field(default=0.05, ge=0)

    # Scale
    max_link_dimension: float = Field(default=10.0, gt=0)
    min_link_dimension: float = Field(default=0.001, ge=0)

    # Adjacency
    adjacency_max_depth: int = Field(default=2, ge=1)
    hierarchy_walk_limit: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _check_ranges(self) -> EngineConfig:
        if self.min_link_dimension >= self.max_link_dimension:
            raise ValueError("min_link_dimension must be smaller than max_link_dimension")
        if self.adjacency_max_depth > self.hierarchy_walk_limit:
            raise ValueError("adjacency_max_depth must not exceed hierarchy_walk_limit")
        return self


def load_config(source: str | Path) -> EngineConfig:
    """Load an ``EngineConfig`` from a YAML file path or YAML text.

    Raises:
        ConfigError: On unreadable files, YAML syntax errors or invalid values.
    """
    if isinstance(source, Path):
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file: {e}") from e
    else:
        text = source

    yml = YAML(typ="safe")
    yml.allow_duplicate_keys = False
    try:
        data = yml.load(text)
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Top-level YAML value must be a mapping")

    try:
        return EngineConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration:\n{e}") from e
