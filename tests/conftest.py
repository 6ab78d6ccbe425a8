"""Shared test fixtures for profile-registry tests."""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from profile_registry.config import RegistryConfig

FIXED_NOW = datetime(2026, 3, 1, 12, 30, 0, tzinfo=timezone.utc)
FIXED_TIMESTAMP = "2026-03-01T12:30:00Z"


def fixed_clock() -> datetime:
    """Clock that always returns FIXED_NOW."""
    return FIXED_NOW


def make_module(name: str, category: str = "development", **fields: Any) -> dict[str, Any]:
    """Return a minimal valid module document.

    Extra keyword arguments are merged into the document.
    """
    document: dict[str, Any] = {
        "name": name,
        "version": "1.0.0",
        "description": f"{name} tools",
        "category": category,
        "platforms": ["linux", "darwin"],
        "shells": ["bash", "zsh"],
    }
    document.update(fields)
    return document


def write_module(modules_dir: Path, relative_path: str, document: dict[str, Any] | str) -> Path:
    """Write a module document (dict or raw text) below modules_dir."""
    path = modules_dir / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(document, str):
        path.write_text(document)
    else:
        path.write_text(json.dumps(document, indent=2))
    return path


def read_json(path: Path) -> Any:
    """Load a JSON file."""
    return json.loads(path.read_text())


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    """Empty modules directory."""
    path = tmp_path / "modules"
    path.mkdir()
    return path


@pytest.fixture
def registry_dir(tmp_path: Path) -> Path:
    """Registry output directory (not created)."""
    return tmp_path / "registry"


@pytest.fixture
def config(modules_dir: Path, registry_dir: Path, tmp_path: Path) -> RegistryConfig:
    """Config pointing at the temporary modules and registry directories."""
    return RegistryConfig(
        modules_dir=modules_dir,
        registry_dir=registry_dir,
        patterns_dir=tmp_path / "patterns",
        base_url="https://registry.example.test",
    )


ModuleWriter = Callable[..., Path]


@pytest.fixture
def add_module(modules_dir: Path) -> ModuleWriter:
    """Factory fixture that writes a module into <category>/<name>.json.

    Usage:
        add_module("go")
        add_module("kubectl", category="devops", dependencies={"commands": ["kubectl"]})
    """

    def _add(name: str, category: str = "development", **fields: Any) -> Path:
        document = make_module(name, category, **fields)
        relative = f"{category}/{name}.json" if category else f"{name}.json"
        return write_module(modules_dir, relative, document)

    return _add


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from real config files and PROFILE_REGISTRY_* variables."""
    for var in (
        "PROFILE_REGISTRY_MODULES_DIR",
        "PROFILE_REGISTRY_REGISTRY_DIR",
        "PROFILE_REGISTRY_PATTERNS_DIR",
        "PROFILE_REGISTRY_BASE_URL",
        "PROFILE_REGISTRY_ON_DUPLICATE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
