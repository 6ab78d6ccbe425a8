"""Module convention checks.

These checks work on the raw JSON of a module rather than the Pydantic
model, so they can report on documents the builder would reject and on
fields the builder ignores (such as operational_tiers).
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from profile_registry.categories import CATEGORY_KEYS, is_known_category
from profile_registry.module_schema import MODULE_FILE_SUFFIX, is_module_file
from profile_registry.validation import ValidationResult

REQUIRED_FIELDS = ("name", "version", "description", "category", "platforms", "shells")

MODULE_NAME_PATTERN = re.compile(r"[a-z0-9-]+")
ENV_VAR_NAME_PATTERN = re.compile(r"[A-Z][A-Z0-9_]*")

# Variables everyone knows; no description needed
WELL_KNOWN_ENV_VARS = frozenset({"HOME", "PWD", "PATH", "LANG", "LC_ALL", "TERM"})

VALID_DEPLOYMENTS = ("local", "container", "cloud", "bare-metal", "hybrid")
VALID_ENVIRONMENTS = ("development", "staging", "production")
VALID_CONSTRAINTS = (
    "network_required",
    "network_optional",
    "gpu_required",
    "gpu_optional",
    "privileged_access",
    "security_compliance",
    "platform_specific",
    "high_memory",
    "high_cpu",
    "persistent_storage",
)


@dataclass
class ModuleReport:
    """Validation outcome for one module file."""

    path: Path
    result: ValidationResult
    env_var_count: int = 0


def find_module_files(modules_dir: Path) -> list[Path]:
    """All module documents under modules_dir in lexical order."""
    return sorted(p for p in modules_dir.rglob(f"*{MODULE_FILE_SUFFIX}") if is_module_file(p))


def check_module_fields(data: dict[str, Any]) -> list[str]:
    """Check required fields, the name format and the category."""
    errors = [f"Missing required field '{key}'" for key in REQUIRED_FIELDS if key not in data]

    name = data.get("name")
    if isinstance(name, str) and not MODULE_NAME_PATTERN.fullmatch(name):
        errors.append(
            f"Invalid module name '{name}' (lowercase letters, digits and hyphens only)"
        )

    category = data.get("category")
    if isinstance(category, str) and not is_known_category(category):
        errors.append(
            f"Unknown category '{category}' (expected one of: {', '.join(CATEGORY_KEYS)})"
        )

    for key in ("platforms", "shells"):
        if key in data and not isinstance(data[key], list):
            errors.append(f"Field '{key}' must be a list")

    return errors


def check_env_var(env_var: Any) -> list[str]:
    """Check one environment variable declaration."""
    if not isinstance(env_var, dict):
        return ["Environment entry must be an object"]

    issues: list[str] = []
    name = str(env_var.get("name") or "")
    value = env_var.get("value") or ""
    label = name or "<unnamed>"

    if not name:
        issues.append("Missing 'name' field")
    elif not ENV_VAR_NAME_PATTERN.fullmatch(name):
        issues.append(f"Invalid name format '{name}' (must be UPPER_CASE with underscores)")

    for flag in ("export", "required", "sensitive"):
        if flag in env_var and not isinstance(env_var[flag], bool):
            issues.append(f"Invalid '{flag}' field (must be boolean)")

    if not value and env_var.get("required") is True:
        issues.append("Missing 'value' field for required variable")

    if not env_var.get("description") and name not in WELL_KNOWN_ENV_VARS:
        issues.append(f"Missing 'description' field for '{label}'")

    if env_var.get("sensitive") is True and value:
        issues.append("Sensitive variable should not have default value")

    return [f"Variable '{label}': {issue}" for issue in issues]


def check_operational_tiers(tiers: Any) -> tuple[list[str], list[str]]:
    """Check an operational_tiers object.

    Returns:
        A (errors, warnings) pair.
    """
    if not isinstance(tiers, dict):
        return ["'operational_tiers' must be an object"], []

    errors: list[str] = []
    warnings: list[str] = []

    deployment = tiers.get("deployment") or []
    environments = tiers.get("environments") or []
    constraints = tiers.get("constraints") or []

    for key, values in (
        ("deployment", deployment),
        ("environments", environments),
        ("constraints", constraints),
    ):
        if not isinstance(values, list):
            errors.append(f"'operational_tiers.{key}' must be a list")
    if errors:
        return errors, warnings

    if not deployment:
        errors.append("No deployment types specified")
    errors.extend(f"Invalid deployment type: {d}" for d in deployment if d not in VALID_DEPLOYMENTS)

    if not environments:
        errors.append("No environments specified")
    errors.extend(f"Invalid environment: {e}" for e in environments if e not in VALID_ENVIRONMENTS)

    errors.extend(f"Invalid constraint: {c}" for c in constraints if c not in VALID_CONSTRAINTS)

    if "production" in environments and deployment == ["local"]:
        warnings.append(
            "Production environment with only local deployment may not be appropriate"
        )

    return errors, warnings


def validate_module_file(
    path: Path, *, env_vars: bool = True, tiers: bool = True
) -> ModuleReport:
    """Run every enabled check against one module file."""
    try:
        data = json.loads(path.read_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return ModuleReport(path, ValidationResult.from_messages([f"Invalid JSON: {e}"]))

    if not isinstance(data, dict):
        return ModuleReport(path, ValidationResult.from_messages(["Module must be a JSON object"]))

    errors = check_module_fields(data)
    warnings: list[str] = []
    env_var_count = 0

    if env_vars:
        environment = data.get("environment") or []
        if not isinstance(environment, list):
            errors.append("Field 'environment' must be a list")
        elif not environment:
            warnings.append("No environment variables found in module")
        else:
            env_var_count = len(environment)
            for env_var in environment:
                errors.extend(check_env_var(env_var))

    if tiers:
        if "operational_tiers" not in data:
            warnings.append("No operational_tiers defined")
        else:
            tier_errors, tier_warnings = check_operational_tiers(data["operational_tiers"])
            errors.extend(tier_errors)
            warnings.extend(tier_warnings)

    return ModuleReport(path, ValidationResult.from_messages(errors, warnings), env_var_count)


def validate_modules(
    modules_dir: Path, *, env_vars: bool = True, tiers: bool = True
) -> list[ModuleReport]:
    """Validate every module file under modules_dir.

    Raises:
        FileNotFoundError: If modules_dir does not exist.
    """
    if not modules_dir.is_dir():
        msg = f"Modules directory not found: {modules_dir}"
        raise FileNotFoundError(msg)

    return [
        validate_module_file(path, env_vars=env_vars, tiers=tiers)
        for path in find_module_files(modules_dir)
    ]
