"""Configuration for profile-registry.

Settings are resolved in this order, later sources winning:
1. Built-in defaults
2. profile-registry.yaml in the working directory (or an explicit path)
3. PROFILE_REGISTRY_* environment variables
4. Command-line flags (applied by the CLI via with_overrides)
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from profile_registry.errors import format_validation_errors

CONFIG_FILE_NAME = "profile-registry.yaml"

DEFAULT_BASE_URL = "https://registry.go-profile.dev"

# Environment variable -> config field
ENV_OVERRIDES = {
    "PROFILE_REGISTRY_MODULES_DIR": "modules_dir",
    "PROFILE_REGISTRY_REGISTRY_DIR": "registry_dir",
    "PROFILE_REGISTRY_PATTERNS_DIR": "patterns_dir",
    "PROFILE_REGISTRY_BASE_URL": "base_url",
    "PROFILE_REGISTRY_ON_DUPLICATE": "on_duplicate",
}


class DuplicatePolicy(str, Enum):
    """What to do when two module files resolve to the same name."""

    OVERWRITE = "overwrite"
    ERROR = "error"


class RegistryConfig(BaseModel):
    """Resolved settings for a registry checkout."""

    model_config = ConfigDict(extra="forbid")

    modules_dir: Path = Field(default=Path("./modules"), description="Module source directory")
    registry_dir: Path = Field(default=Path("./registry"), description="Registry output directory")
    patterns_dir: Path = Field(default=Path("./patterns"), description="Custom pattern directory")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Written verbatim into index.json")
    on_duplicate: DuplicatePolicy = Field(
        default=DuplicatePolicy.OVERWRITE,
        description="Later file wins (overwrite) or the build fails (error)",
    )
    atomic: bool = Field(
        default=True,
        description="Stage all artifacts and swap them in only after every step succeeded",
    )

    def with_overrides(self, **overrides: Any) -> "RegistryConfig":
        """Return a copy with every non-None override applied."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        return RegistryConfig.model_validate({**self.model_dump(), **updates})


def load_config(path: Path | None = None) -> RegistryConfig:
    """Load configuration from YAML and the environment.

    Args:
        path: Explicit config file. Defaults to profile-registry.yaml in the
            current directory; a missing default file is not an error.

    Returns:
        Validated RegistryConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If the YAML is invalid or schema validation fails.
    """
    config_path = path if path is not None else Path(CONFIG_FILE_NAME)
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text())
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in '{config_path}': {e}"
            raise ValueError(msg) from e
        if loaded is not None and not isinstance(loaded, dict):
            msg = f"Invalid config '{config_path}': expected a mapping"
            raise ValueError(msg)
        data.update(loaded or {})
    elif path is not None:
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    for env_var, field_name in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            data[field_name] = env_value

    try:
        return RegistryConfig.model_validate(data)
    except ValidationError as e:
        clean_errors = format_validation_errors(e)
        msg = f"Invalid config '{config_path}': {clean_errors}"
        raise ValueError(msg) from e
