"""
Configuration handling for package_linker.

Defines the configuration schema and provides loading of
linker configuration from YAML files.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError


DEFAULT_PACKAGES_DIR = "packages"
DEFAULT_DIST_DIR = "dist"
MODULES_DIR = "node_modules"
MANIFEST_FILE = "package.json"


class LinkerConfig(BaseModel):
    """Main configuration for the package linker."""

    # Path relative to root
    packages_dir: str = Field(
        default=DEFAULT_PACKAGES_DIR,
        description="Directory containing one subdirectory per package",
    )
    # Name of the build output directory inside each package
    dist_dir: str = Field(
        default=DEFAULT_DIST_DIR,
        description="Build output subdirectory name within each package",
    )
    modules_dir: str = Field(
        default=MODULES_DIR,
        description="Name of the shared dependency directory",
    )
    manifest_file: str = Field(
        default=MANIFEST_FILE,
        description="Per-package manifest declaring the package name",
    )
    root: Path = Field(
        default_factory=Path.cwd,
        description="Root directory holding the shared dependency directory",
    )

    @field_validator("packages_dir", "dist_dir", "modules_dir", "manifest_file")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("dist_dir", "modules_dir", "manifest_file")
    @classmethod
    def _single_component(cls, value: str) -> str:
        # These are joined onto every package path
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"must be a single directory name, got {value!r}")
        return value

    @property
    def packages_path(self) -> Path:
        """Absolute path of the package root directory."""
        return (self.root / self.packages_dir).absolute()

    @property
    def modules_path(self) -> Path:
        """Absolute path of the shared dependency directory."""
        return (self.root / self.modules_dir).absolute()

    @classmethod
    def from_yaml(cls, path: Path) -> "LinkerConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e

    def merged(self, **overrides) -> "LinkerConfig":
        """Return a validated copy with the non-None overrides applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        try:
            return type(self).model_validate({**self.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigError(str(e)) from e
