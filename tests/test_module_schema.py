"""Tests for module document loading."""

from pathlib import Path

import pytest

from profile_registry.module_schema import Module, ModuleLoadError, load_module
from tests.conftest import make_module, write_module


class TestLoadModule:
    """Tests for load_module."""

    def test_loads_full_document(self, tmp_path: Path) -> None:
        """All module sections are parsed into typed models."""
        # Given
        document = make_module(
            "go",
            author="Jane <jane@example.com>",
            repository={"type": "git", "url": "https://example.test/go.git"},
            dependencies={"commands": ["go"], "optional": ["gopls"]},
            environment=[{"name": "GOPATH", "value": "$HOME/go", "export": True}],
            aliases=[{"name": "gob", "command": "go build"}],
            functions=[{"name": "gotest", "commands": ["go test ./..."]}],
            path=[{"directory": "$GOPATH/bin", "prepend": True}],
            files=[{"path": "~/.gorc", "content": "x"}],
            checks=[{"name": "go-installed", "type": "command", "command": "go"}],
        )
        path = write_module(tmp_path, "go.json", document)

        # When
        module = load_module(path)

        # Then
        assert module.name == "go"
        assert module.repository is not None
        assert module.repository.type == "git"
        assert module.dependencies is not None
        assert module.dependencies.commands == ["go"]
        assert module.dependencies.modules is None
        assert module.environment[0].name == "GOPATH"
        assert module.environment[0].export is True
        assert module.aliases[0].command == "go build"
        assert module.functions[0].commands == ["go test ./..."]
        assert module.path[0].prepend is True
        assert module.files[0].path == "~/.gorc"
        assert module.checks[0].type == "command"

    def test_unknown_fields_ignored(self, tmp_path: Path) -> None:
        """Fields outside the builder's schema, like operational_tiers, are accepted."""
        document = make_module("go", operational_tiers={"deployment": ["local"]})
        path = write_module(tmp_path, "go.json", document)

        module = load_module(path)

        assert module.name == "go"

    def test_name_from_filename(self, tmp_path: Path) -> None:
        """A document without name is named after its file."""
        path = write_module(tmp_path, "node.json", {"version": "1.0.0"})

        assert load_module(path).name == "node"

    def test_empty_name_from_filename(self, tmp_path: Path) -> None:
        """An empty name is treated like a missing one."""
        path = write_module(tmp_path, "node.json", {"name": "", "version": "1.0.0"})

        assert load_module(path).name == "node"

    def test_defaults_for_missing_fields(self, tmp_path: Path) -> None:
        """Partial documents load with empty defaults."""
        path = write_module(tmp_path, "go.json", {"name": "go"})

        module = load_module(path)

        assert module == Module(name="go")
        assert module.platforms == []
        assert module.category == ""

    def test_null_fields_load_as_defaults(self, tmp_path: Path) -> None:
        """JSON null loads as the field's empty value, nested models included."""
        path = write_module(tmp_path, "go.json", make_module(
            "go",
            description=None,
            platforms=None,
            environment=[{"name": "GOPATH", "value": None}],
            functions=[{"name": "gotest", "commands": None}],
        ))

        module = load_module(path)

        assert module.description == ""
        assert module.platforms == []
        assert module.environment[0].value == ""
        assert module.functions[0].commands == []

    def test_null_required_field_rejected(self, tmp_path: Path) -> None:
        """Fields without a default still reject null."""
        path = write_module(tmp_path, "go.json", make_module("go", aliases=[{"name": "gt", "command": None}]))

        with pytest.raises(ModuleLoadError, match="aliases.0.command"):
            load_module(path)

    def test_lone_surrogate_replaced(self, tmp_path: Path) -> None:
        """Unpaired surrogate escapes become U+FFFD; valid pairs are kept."""
        path = write_module(
            tmp_path, "go.json", '{"name": "go", "description": "bad \\ud800 ok \\ud83d\\ude00"}'
        )

        module = load_module(path)

        assert module.description == "bad \ufffd ok \U0001f600"
        module.description.encode("utf-8")

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Malformed JSON is reported with the file path."""
        path = write_module(tmp_path, "go.json", "{not json")

        with pytest.raises(ModuleLoadError, match="invalid JSON") as exc_info:
            load_module(path)

        assert exc_info.value.path == path
        assert str(path) in str(exc_info.value)

    def test_wrong_shape_raises(self, tmp_path: Path) -> None:
        """A JSON array is not a module."""
        path = write_module(tmp_path, "go.json", "[]")

        with pytest.raises(ModuleLoadError, match="JSON object"):
            load_module(path)

    def test_wrong_type_raises(self, tmp_path: Path) -> None:
        """A field with the wrong type is reported by name."""
        path = write_module(tmp_path, "go.json", make_module("go", shells="bash"))

        with pytest.raises(ModuleLoadError, match="'shells': expected list"):
            load_module(path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """An unreadable file is a load error, not an OSError."""
        with pytest.raises(ModuleLoadError):
            load_module(tmp_path / "missing.json")
