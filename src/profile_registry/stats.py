"""Read-only inspection of a built registry.

``collect_stats`` summarizes the module tree and the registry directory.
``check_registry`` confirms every JSON file in the registry directory
parses, and that the builder's own artifacts still match their schemas.
"""

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError

from profile_registry.builder import CATEGORIES_FILE, INDEX_FILE, VERSIONS_DIR
from profile_registry.errors import format_validation_errors
from profile_registry.lint import find_module_files
from profile_registry.registry_schema import Categories, RegistryIndex, VersionMetadata


@dataclass
class RegistryStats:
    """Counts and sizes for one modules/registry pair."""

    module_files: int
    categories: int | None
    registry_bytes: int


@dataclass
class RegistryFileIssue:
    """A registry file that failed to parse or validate."""

    path: Path
    message: str


def directory_size(path: Path) -> int:
    """Total size in bytes of the regular files below path."""
    if not path.is_dir():
        return 0
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def collect_stats(modules_dir: Path, registry_dir: Path) -> RegistryStats:
    """Summarize the module tree and the registry directory.

    ``categories`` is None when categories.json has not been built yet.

    Raises:
        ValueError: If categories.json exists but is not valid.
    """
    module_files = len(find_module_files(modules_dir)) if modules_dir.is_dir() else 0

    categories = None
    categories_path = registry_dir / CATEGORIES_FILE
    if categories_path.is_file():
        try:
            document = Categories.model_validate_json(categories_path.read_bytes())
        except ValidationError as e:
            msg = f"Invalid {categories_path}: {format_validation_errors(e)}"
            raise ValueError(msg) from e
        categories = len(document.categories)

    return RegistryStats(
        module_files=module_files,
        categories=categories,
        registry_bytes=directory_size(registry_dir),
    )


def _schema_for(relative: Path) -> type[BaseModel] | None:
    if relative == Path(INDEX_FILE):
        return RegistryIndex
    if relative == Path(CATEGORIES_FILE):
        return Categories
    if relative.parts[0] == VERSIONS_DIR:
        return VersionMetadata
    return None


def check_registry(registry_dir: Path) -> tuple[int, list[RegistryFileIssue]]:
    """Check every JSON file below registry_dir.

    Staging directories left by an interrupted build are skipped.

    Returns:
        The number of files checked and the issues found.

    Raises:
        FileNotFoundError: If registry_dir does not exist.
    """
    if not registry_dir.is_dir():
        msg = f"Registry directory not found: {registry_dir}"
        raise FileNotFoundError(msg)

    paths = sorted(
        p
        for p in registry_dir.rglob("*.json")
        if p.is_file() and not p.relative_to(registry_dir).parts[0].startswith(".staging-")
    )

    issues = []
    for path in paths:
        try:
            data = json.loads(path.read_bytes())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            issues.append(RegistryFileIssue(path, f"Invalid JSON: {e}"))
            continue

        schema = _schema_for(path.relative_to(registry_dir))
        if schema is None:
            continue
        try:
            schema.model_validate(data)
        except ValidationError as e:
            issues.append(RegistryFileIssue(path, format_validation_errors(e)))

    return len(paths), issues
