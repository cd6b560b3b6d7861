"""Operator runtime configuration."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from yt_operator.exceptions import ConfigurationError

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class OperatorConfig(BaseModel):
    """Operator configuration."""

    namespace: str = "default"
    kubeconfig: str | None = None
    in_cluster: bool = False
    reconcile_interval: float = Field(default=30.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)
    fetch_workers: int = Field(default=4, ge=1)
    log_level: str = "INFO"

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate namespace is not empty."""
        if not v:
            raise ValueError("namespace cannot be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is a known logging level."""
        if v.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got '{v}'")
        return v.upper()

    def save(self, path: str | Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str | Path) -> "OperatorConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                f"Expected location: {path.absolute()}",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Configuration file is not valid YAML: {path}", str(e))

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}", str(e))
