"""Operational tier patterns.

A pattern is a named, reusable operational_tiers preset. Patterns come
from three places, searched in this order:

1. Official patterns in <registry_dir>/patterns.json under patterns.official
2. Community patterns in the same file under patterns.community
3. Custom patterns, one JSON file per pattern in <patterns_dir>
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from profile_registry.errors import format_validation_errors
from profile_registry.lint import check_operational_tiers
from profile_registry.module_schema import MODULE_FILE_SUFFIX
from profile_registry.validation import ValidationResult

PATTERNS_FILE = "patterns.json"
BACKUP_SUFFIX = ".backup"

# Characters that would turn a module name into a path or a glob
_NAME_METACHARACTERS = frozenset("/\\*?[]")


class PatternNotFoundError(Exception):
    """Raised when no pattern has the requested slug."""


class ModuleFileNotFoundError(Exception):
    """Raised when no module file matches the requested name."""


class PatternSource(str, Enum):
    """Where a pattern was defined."""

    OFFICIAL = "official"
    COMMUNITY = "community"
    CUSTOM = "custom"


class OperationalTiers(BaseModel):
    """Deployment targets, environments and constraints for a module.

    Keys other than the three known lists are kept so a pattern is applied
    exactly as written.
    """

    model_config = ConfigDict(extra="allow")

    deployment: list[str] = Field(default_factory=list)
    environments: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)


class PatternExample(BaseModel):
    """A module that uses a pattern."""

    module_name: str
    description: str = ""


class Pattern(BaseModel):
    """A reusable operational tiers preset."""

    slug: str = ""
    name: str = ""
    description: str = ""
    version: str | None = None
    author: str | dict[str, Any] | None = None
    votes: int | None = None
    recommended_for: list[str] = Field(default_factory=list)
    use_cases: list[str] = Field(default_factory=list)
    operational_tiers: OperationalTiers | None = None
    examples: list[PatternExample] = Field(default_factory=list)

    @property
    def author_name(self) -> str | None:
        """Author as a display string, whichever form it was given in."""
        if isinstance(self.author, dict):
            return self.author.get("name")
        return self.author


@dataclass
class PatternEntry:
    """A pattern and where it came from."""

    slug: str
    source: PatternSource
    pattern: Pattern
    path: Path


@dataclass
class ApplyResult:
    """Outcome of applying a pattern to a module."""

    module_path: Path
    previous: dict[str, Any] | None
    applied: dict[str, Any]
    backup_path: Path | None
    dry_run: bool


@dataclass
class PatternReport:
    """Validation outcome for one custom pattern file."""

    path: Path
    slug: str | None
    result: ValidationResult


def _parse_pattern(data: Any, path: Path, slug: str | None = None) -> Pattern:
    try:
        pattern = Pattern.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid pattern in '{path}': {format_validation_errors(e)}"
        raise ValueError(msg) from e
    if slug is not None and not pattern.slug:
        pattern.slug = slug
    return pattern


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Invalid JSON in '{path}': {e}"
        raise ValueError(msg) from e


def load_catalog_patterns(registry_dir: Path) -> list[PatternEntry]:
    """Load official and community patterns from patterns.json.

    A missing patterns.json yields no patterns.

    Raises:
        ValueError: If patterns.json or any pattern in it is invalid.
    """
    catalog_path = registry_dir / PATTERNS_FILE
    if not catalog_path.exists():
        return []

    data = _read_json(catalog_path)
    groups = data.get("patterns", {}) if isinstance(data, dict) else {}

    entries: list[PatternEntry] = []
    for source in (PatternSource.OFFICIAL, PatternSource.COMMUNITY):
        group = groups.get(source.value) or {}
        for slug in sorted(group):
            pattern = _parse_pattern(group[slug], catalog_path, slug=slug)
            entries.append(PatternEntry(slug=slug, source=source, pattern=pattern, path=catalog_path))
    return entries


def load_custom_patterns(patterns_dir: Path) -> list[PatternEntry]:
    """Load custom patterns from patterns_dir; files without a slug are skipped.

    Raises:
        ValueError: If a pattern file is invalid.
    """
    if not patterns_dir.is_dir():
        return []

    entries = []
    for path in sorted(patterns_dir.rglob("*.json")):
        pattern = _parse_pattern(_read_json(path), path)
        if pattern.slug:
            entries.append(
                PatternEntry(slug=pattern.slug, source=PatternSource.CUSTOM, pattern=pattern, path=path)
            )
    return entries


def load_patterns(registry_dir: Path, patterns_dir: Path) -> list[PatternEntry]:
    """Load every pattern: official, then community, then custom."""
    return load_catalog_patterns(registry_dir) + load_custom_patterns(patterns_dir)


def find_pattern(slug: str, registry_dir: Path, patterns_dir: Path) -> PatternEntry:
    """Find a pattern by slug.

    Raises:
        PatternNotFoundError: If no pattern has this slug.
    """
    for entry in load_patterns(registry_dir, patterns_dir):
        if entry.slug == slug:
            return entry

    msg = f"Pattern '{slug}' not found"
    raise PatternNotFoundError(msg)


def find_module_file(modules_dir: Path, name: str) -> Path:
    """Find the document for a module by name.

    Raises:
        ModuleFileNotFoundError: If name is not a plain module name or no
            <name>.json exists under modules_dir.
    """
    if not name or name in (".", "..") or _NAME_METACHARACTERS & set(name):
        msg = f"Invalid module name '{name}'"
        raise ModuleFileNotFoundError(msg)

    matches = sorted(modules_dir.rglob(f"{name}{MODULE_FILE_SUFFIX}")) if modules_dir.is_dir() else []
    for path in matches:
        if path.is_file():
            return path

    msg = f"Module '{name}' not found in {modules_dir}"
    raise ModuleFileNotFoundError(msg)


def _replace_file(path: Path, data: bytes) -> None:
    """Write data to a temporary file beside path, then move it over path."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def apply_pattern(
    entry: PatternEntry,
    module_path: Path,
    *,
    dry_run: bool = False,
    backup: bool = True,
) -> ApplyResult:
    """Replace a module's operational_tiers with a pattern's.

    Args:
        entry: The pattern to apply.
        module_path: Module document to update.
        dry_run: Report what would change without writing anything.
        backup: Copy the original to <file>.backup before writing.

    Returns:
        ApplyResult with the previous and applied tiers.

    Raises:
        ValueError: If the pattern has no operational tiers or the module
            is not a JSON object.
    """
    if entry.pattern.operational_tiers is None:
        msg = f"Pattern '{entry.slug}' has no operational tiers"
        raise ValueError(msg)

    document = _read_json(module_path)
    if not isinstance(document, dict):
        msg = f"Module '{module_path}' is not a JSON object"
        raise ValueError(msg)

    previous = document.get("operational_tiers")
    applied = entry.pattern.operational_tiers.model_dump(exclude_unset=True)

    if dry_run:
        return ApplyResult(module_path, previous, applied, backup_path=None, dry_run=True)

    document["operational_tiers"] = applied
    data = (json.dumps(document, indent=2, ensure_ascii=False) + "\n").encode("utf-8")

    backup_path = None
    if backup:
        backup_path = module_path.with_name(module_path.name + BACKUP_SUFFIX)
        shutil.copy2(module_path, backup_path)

    _replace_file(module_path, data)

    return ApplyResult(module_path, previous, applied, backup_path=backup_path, dry_run=False)


def _consistency_warnings(tiers: OperationalTiers) -> list[str]:
    warnings = []
    if "gpu_required" in tiers.constraints and not (
        {"cloud", "bare-metal"} & set(tiers.deployment)
    ):
        warnings.append("GPU required but no suitable deployment types")
    if "security_compliance" in tiers.constraints and "production" not in tiers.environments:
        warnings.append("Security compliance constraint but no production environment")
    return warnings


def validate_custom_patterns(registry_dir: Path, patterns_dir: Path) -> list[PatternReport]:
    """Validate every custom pattern file.

    Errors: unreadable files, missing slug, slug conflicts with official,
    community or other custom patterns, and invalid tier values.
    Warnings: combinations of tiers that rarely make sense.

    Raises:
        ValueError: If patterns.json itself is invalid.
    """
    if not patterns_dir.is_dir():
        return []

    reserved = {entry.slug: entry.source for entry in load_catalog_patterns(registry_dir)}

    parsed: list[tuple[Path, Pattern | None, str | None]] = []
    for path in sorted(patterns_dir.rglob("*.json")):
        try:
            parsed.append((path, _parse_pattern(_read_json(path), path), None))
        except ValueError as e:
            parsed.append((path, None, str(e)))

    slug_owners: dict[str, list[Path]] = {}
    for path, pattern, _ in parsed:
        if pattern is not None and pattern.slug:
            slug_owners.setdefault(pattern.slug, []).append(path)

    reports = []
    for path, pattern, load_error in parsed:
        if pattern is None:
            reports.append(PatternReport(path, None, ValidationResult.from_messages([load_error or ""])))
            continue

        errors: list[str] = []
        warnings: list[str] = []
        slug = pattern.slug or None

        if slug is None:
            errors.append("Missing or invalid slug")
        else:
            if slug in reserved:
                errors.append(f"Slug '{slug}' conflicts with {reserved[slug].value} pattern")
            errors.extend(
                f"Slug '{slug}' conflicts with {other.name}"
                for other in slug_owners[slug]
                if other != path
            )

        if pattern.operational_tiers is None:
            errors.append("No operational_tiers defined")
        else:
            tier_errors, tier_warnings = check_operational_tiers(pattern.operational_tiers.model_dump())
            errors.extend(tier_errors)
            warnings.extend(tier_warnings)
            warnings.extend(_consistency_warnings(pattern.operational_tiers))

        reports.append(PatternReport(path, slug, ValidationResult.from_messages(errors, warnings)))

    return reports
