"""Runtime configuration with Pydantic v2 validation.

Loads ``view-auth.yaml`` into a typed :class:`MatrixAuthConfig`. Relative
paths are resolved against the directory of the config file.

Example
-------
::

    version: "1"
    catalog_path: permissions.yaml
    store_path: matrix.yaml
    log_level: INFO
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class MatrixAuthConfig(BaseModel):
    """Top-level configuration. Every key is optional."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    catalog_path: Path = Field(default=Path("permissions.yaml"))
    store_path: Path = Field(default=Path("matrix.yaml"))
    log_level: LogLevel = Field(default="WARNING")

    def resolve_paths(self, base_dir: Path) -> MatrixAuthConfig:
        """Return a copy with relative paths anchored at ``base_dir``."""
        updates: dict[str, Path] = {}
        for name in ("catalog_path", "store_path"):
            value: Path = getattr(self, name)
            if not value.is_absolute():
                updates[name] = base_dir / value
        return self.model_copy(update=updates)


class ConfigLoader:
    """Loads and validates the YAML configuration file."""

    def load(self, config_path: Path) -> MatrixAuthConfig:
        """Load and validate ``config_path``.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        pydantic.ValidationError:
            When the YAML content fails validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return MatrixAuthConfig.model_validate(raw).resolve_paths(config_path.parent)

    def load_string(self, yaml_content: str) -> MatrixAuthConfig:
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return MatrixAuthConfig.model_validate(raw)

    def defaults(self) -> MatrixAuthConfig:
        return MatrixAuthConfig()
