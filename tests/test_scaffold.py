"""Tests for module scaffolding."""

from pathlib import Path

import pytest

from profile_registry.module_schema import load_module
from profile_registry.scaffold import create_module
from tests.conftest import read_json


class TestCreateModule:
    """Tests for create_module."""

    def test_writes_template(self, modules_dir: Path) -> None:
        """The module lands in its category directory with template defaults."""
        # When
        path = create_module(modules_dir, "python", "development", "Python development tools")

        # Then
        assert path == modules_dir / "development" / "python.json"
        document = read_json(path)
        assert document["name"] == "python"
        assert document["version"] == "1.0.0"
        assert document["platforms"] == ["darwin", "linux", "windows"]
        assert document["shells"] == ["bash", "zsh", "fish", "powershell"]
        assert document["environment"] == []
        assert "author" not in document

    def test_author_included(self, modules_dir: Path) -> None:
        path = create_module(modules_dir, "python", "development", "Python", author="Jane <j@x.test>")

        assert read_json(path)["author"] == "Jane <j@x.test>"

    def test_result_loads_as_module(self, modules_dir: Path) -> None:
        """Scaffolded modules are accepted by the builder."""
        path = create_module(modules_dir, "terraform", "devops", "Terraform helpers")

        module = load_module(path)

        assert module.name == "terraform"
        assert module.category == "devops"

    @pytest.mark.parametrize("name", ["Python", "py_thon", "py thon", "", "go\n"])
    def test_invalid_name(self, modules_dir: Path, name: str) -> None:
        with pytest.raises(ValueError, match="Invalid module name"):
            create_module(modules_dir, name, "development", "desc")

        assert list(modules_dir.iterdir()) == []

    def test_invalid_category(self, modules_dir: Path) -> None:
        with pytest.raises(ValueError, match="Invalid category 'gaming'"):
            create_module(modules_dir, "python", "gaming", "desc")

    def test_empty_description(self, modules_dir: Path) -> None:
        with pytest.raises(ValueError, match="Description"):
            create_module(modules_dir, "python", "development", "  ")

    def test_existing_module(self, modules_dir: Path) -> None:
        """An existing module is never overwritten."""
        path = create_module(modules_dir, "python", "development", "first")

        with pytest.raises(FileExistsError):
            create_module(modules_dir, "python", "development", "second")

        assert read_json(path)["description"] == "first"
