"""Module document schema definitions using Pydantic.

This module defines the schema for the module JSON files that make up the
registry. Each module describes one unit of shell configuration:
environment variables, aliases, functions, path entries, files and checks.
"""

import json
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from profile_registry.errors import format_validation_errors

# Module documents are discovered by this suffix
MODULE_FILE_SUFFIX = ".json"

# Unpaired UTF-16 surrogates can come from \uXXXX escapes in JSON
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
REPLACEMENT_CHARACTER = "\ufffd"


class ModuleLoadError(Exception):
    """Raised when a module file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize with the offending path and a short reason."""
        self.path = path
        self.reason = reason
        super().__init__(f"loading {path}: {reason}")


class _ModuleModel(BaseModel):
    """Base for module document models.

    A JSON null in a field that has a default loads as that default.
    """

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name is not None:
            field_info = cls.model_fields[info.field_name]
            if not field_info.is_required():
                return field_info.get_default(call_default_factory=True)
        return value


class Repository(_ModuleModel):
    """Source repository of a module."""

    type: str = Field(default="", description="Repository kind, e.g. git")
    url: str = Field(default="", description="Repository URL")


class Dependencies(_ModuleModel):
    """Dependencies a module declares."""

    modules: list[str] | None = Field(default=None, description="Other registry modules")
    commands: list[str] | None = Field(default=None, description="Required external commands")
    optional: list[str] | None = Field(default=None, description="Optional external commands")


class EnvironmentVariable(_ModuleModel):
    """An environment variable set by a module."""

    name: str
    value: str = ""
    export: bool | None = None
    description: str | None = None
    required: bool | None = None
    sensitive: bool | None = None


class Alias(_ModuleModel):
    """A shell alias."""

    name: str
    command: str
    description: str | None = None


class Function(_ModuleModel):
    """A shell function built from a list of commands."""

    name: str
    description: str | None = None
    commands: list[str] = Field(default_factory=list)
    parameters: list[str] | None = None


class PathEntry(_ModuleModel):
    """A directory added to PATH."""

    directory: str
    prepend: bool | None = None


class ModuleFile(_ModuleModel):
    """A file installed or sourced by a module."""

    path: str
    content: str | None = None
    source: bool | None = None
    execute: bool | None = None
    mode: str | None = None
    description: str | None = None


class Check(_ModuleModel):
    """An executable check run when the module loads."""

    name: str
    description: str | None = None
    type: str
    command: str | None = None
    args: list[str] | None = None
    path: str | None = None
    variable: str | None = None
    required: bool | None = None
    on_success: list[str] | None = None
    on_failure: list[str] | None = None


class Module(_ModuleModel):
    """Root schema for a module JSON document.

    Scalar fields default to empty values so partially written documents
    still load; wrong types are rejected. Unknown keys such as
    ``operational_tiers`` are ignored here and handled by the validators.
    """

    name: str = Field(default="", description="Unique module name")
    version: str = Field(default="", description="Semantic version")
    description: str = Field(default="", description="One-line description")
    category: str = Field(default="", description="One of the known categories")
    author: str | None = None
    license: str | None = None
    homepage: str | None = None
    repository: Repository | None = None
    platforms: list[str] = Field(default_factory=list)
    shells: list[str] = Field(default_factory=list)
    dependencies: Dependencies | None = None
    environment: list[EnvironmentVariable] = Field(default_factory=list)
    aliases: list[Alias] = Field(default_factory=list)
    functions: list[Function] = Field(default_factory=list)
    path: list[PathEntry] = Field(default_factory=list)
    files: list[ModuleFile] = Field(default_factory=list)
    checks: list[Check] = Field(default_factory=list)


def is_module_file(path: Path) -> bool:
    """Return True if path looks like a module document."""
    return path.is_file() and path.name.endswith(MODULE_FILE_SUFFIX)


def replace_lone_surrogates(value: Any) -> Any:
    """Replace unpaired surrogates in every string of a parsed JSON value with U+FFFD."""
    if isinstance(value, str):
        return _LONE_SURROGATE.sub(REPLACEMENT_CHARACTER, value)
    if isinstance(value, list):
        return [replace_lone_surrogates(item) for item in value]
    if isinstance(value, dict):
        return {
            replace_lone_surrogates(key): replace_lone_surrogates(item)
            for key, item in value.items()
        }
    return value


def load_module(path: Path) -> Module:
    """Load and validate one module document.

    An empty ``name`` is replaced by the file name without its suffix, and
    unpaired surrogates from JSON escapes become U+FFFD so every string can
    be written back out as UTF-8.

    Args:
        path: Path to the module JSON file.

    Returns:
        Validated Module instance.

    Raises:
        ModuleLoadError: If the file cannot be read, is not valid JSON,
            or does not match the module schema.
    """
    try:
        data = json.loads(path.read_bytes())
    except OSError as e:
        raise ModuleLoadError(path, e.strerror or str(e)) from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ModuleLoadError(path, f"invalid JSON: {e}") from e

    try:
        module = Module.model_validate(replace_lone_surrogates(data))
    except ValidationError as e:
        raise ModuleLoadError(path, format_validation_errors(e)) from e

    if not module.name:
        module.name = path.name.removesuffix(MODULE_FILE_SUFFIX)

    return module
