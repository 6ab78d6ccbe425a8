"""Module scaffolding.

Creates a new module document from the standard template at
modules/<category>/<name>.json.
"""

import json
from pathlib import Path
from typing import Any

from profile_registry.categories import CATEGORY_KEYS, is_known_category
from profile_registry.lint import MODULE_NAME_PATTERN
from profile_registry.module_schema import MODULE_FILE_SUFFIX

DEFAULT_PLATFORMS = ["darwin", "linux", "windows"]
DEFAULT_SHELLS = ["bash", "zsh", "fish", "powershell"]
INITIAL_VERSION = "1.0.0"


def module_template(
    name: str, category: str, description: str, author: str | None = None
) -> dict[str, Any]:
    """Return the JSON document for a fresh module."""
    template: dict[str, Any] = {
        "name": name,
        "version": INITIAL_VERSION,
        "description": description,
        "category": category,
        "platforms": list(DEFAULT_PLATFORMS),
        "shells": list(DEFAULT_SHELLS),
        "environment": [],
        "aliases": [],
        "functions": [],
        "path": [],
        "files": [],
        "checks": [],
    }
    if author:
        template["author"] = author
    return template


def create_module(
    modules_dir: Path,
    name: str,
    category: str,
    description: str,
    author: str | None = None,
) -> Path:
    """Write a new module document from the template.

    Args:
        modules_dir: Root of the module tree.
        name: Module name (lowercase letters, digits and hyphens).
        category: One of the known categories.
        description: One-line description.
        author: Optional "Name <email>" author string.

    Returns:
        Path to the created module file.

    Raises:
        ValueError: If the name or category is invalid, or description is empty.
        FileExistsError: If the module file already exists.
    """
    if not MODULE_NAME_PATTERN.fullmatch(name):
        msg = f"Invalid module name '{name}': use lowercase letters, digits and hyphens only"
        raise ValueError(msg)

    if not is_known_category(category):
        msg = f"Invalid category '{category}': expected one of {', '.join(CATEGORY_KEYS)}"
        raise ValueError(msg)

    if not description.strip():
        msg = "Description must not be empty"
        raise ValueError(msg)

    module_path = modules_dir / category / f"{name}{MODULE_FILE_SUFFIX}"
    if module_path.exists():
        msg = f"Module already exists: {module_path}"
        raise FileExistsError(msg)

    module_path.parent.mkdir(parents=True, exist_ok=True)
    document = module_template(name, category, description, author)
    module_path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return module_path
