"""Tests for module convention checks."""

from pathlib import Path

import pytest

from profile_registry.lint import (
    check_env_var,
    check_module_fields,
    check_operational_tiers,
    validate_module_file,
    validate_modules,
)
from tests.conftest import make_module, write_module

VALID_TIERS = {"deployment": ["local", "container"], "environments": ["development"]}


class TestCheckModuleFields:
    """Tests for check_module_fields."""

    def test_valid_module(self) -> None:
        assert check_module_fields(make_module("go")) == []

    def test_missing_required_fields(self) -> None:
        """Each missing required field is reported."""
        errors = check_module_fields({"name": "go"})

        assert "Missing required field 'version'" in errors
        assert "Missing required field 'shells'" in errors
        assert len(errors) == 5

    def test_invalid_name(self) -> None:
        """Module names are lowercase with hyphens."""
        errors = check_module_fields(make_module("My_Module"))

        assert any("Invalid module name 'My_Module'" in e for e in errors)

    def test_trailing_newline_in_name(self) -> None:
        """A name is checked in full, including a trailing newline."""
        errors = check_module_fields(make_module("go\n"))

        assert any("Invalid module name" in e for e in errors)

    def test_unknown_category(self) -> None:
        """Categories outside the catalog are errors here."""
        errors = check_module_fields(make_module("go", category="gaming"))

        assert any("Unknown category 'gaming'" in e for e in errors)


class TestCheckEnvVar:
    """Tests for check_env_var."""

    def test_valid_variable(self) -> None:
        env_var = {"name": "GOPATH", "value": "$HOME/go", "description": "Go workspace"}

        assert check_env_var(env_var) == []

    @pytest.mark.parametrize("name", ["gopath", "1PATH", "GO-PATH", "_GO", "GOPATH\n"])
    def test_invalid_names(self, name: str) -> None:
        """Names must be UPPER_CASE and start with a letter."""
        issues = check_env_var({"name": name, "value": "x", "description": "d"})

        assert any("Invalid name format" in issue for issue in issues)

    def test_missing_name(self) -> None:
        issues = check_env_var({"value": "x", "description": "d"})

        assert issues == ["Variable '<unnamed>': Missing 'name' field"]

    def test_missing_description(self) -> None:
        """Descriptions are required for non-obvious variables."""
        issues = check_env_var({"name": "GOPATH", "value": "x"})

        assert issues == ["Variable 'GOPATH': Missing 'description' field for 'GOPATH'"]

    def test_well_known_needs_no_description(self) -> None:
        assert check_env_var({"name": "PATH", "value": "/usr/bin"}) == []

    def test_required_without_value(self) -> None:
        issues = check_env_var({"name": "API_KEY", "required": True, "description": "d"})

        assert any("Missing 'value' field for required variable" in i for i in issues)

    def test_sensitive_with_default(self) -> None:
        issues = check_env_var({"name": "TOKEN", "value": "abc", "sensitive": True, "description": "d"})

        assert any("Sensitive variable should not have default value" in i for i in issues)

    def test_non_boolean_flags(self) -> None:
        issues = check_env_var({"name": "X", "value": "1", "description": "d", "export": "yes"})

        assert any("Invalid 'export' field" in i for i in issues)

    def test_non_object_entry(self) -> None:
        assert check_env_var("GOPATH") == ["Environment entry must be an object"]


class TestCheckOperationalTiers:
    """Tests for check_operational_tiers."""

    def test_valid_tiers(self) -> None:
        assert check_operational_tiers(VALID_TIERS) == ([], [])

    def test_invalid_values(self) -> None:
        """Values outside the known enums are errors."""
        errors, _ = check_operational_tiers({
            "deployment": ["moon"],
            "environments": ["qa"],
            "constraints": ["fast"],
        })

        assert errors == [
            "Invalid deployment type: moon",
            "Invalid environment: qa",
            "Invalid constraint: fast",
        ]

    def test_empty_lists(self) -> None:
        errors, _ = check_operational_tiers({})

        assert errors == ["No deployment types specified", "No environments specified"]

    def test_production_local_warning(self) -> None:
        """Production with only local deployment is suspicious but allowed."""
        errors, warnings = check_operational_tiers({
            "deployment": ["local"],
            "environments": ["production"],
        })

        assert errors == []
        assert len(warnings) == 1

    def test_non_list_values(self) -> None:
        errors, _ = check_operational_tiers({"deployment": "local", "environments": ["development"]})

        assert errors == ["'operational_tiers.deployment' must be a list"]


class TestValidateModuleFile:
    """Tests for validate_module_file."""

    def test_valid_module(self, tmp_path: Path) -> None:
        """A conforming module passes."""
        document = make_module(
            "go",
            environment=[{"name": "GOPATH", "value": "x", "description": "Go workspace"}],
            operational_tiers=VALID_TIERS,
        )
        path = write_module(tmp_path, "go.json", document)

        report = validate_module_file(path)

        assert report.result.is_valid is True
        assert report.result.warnings == []
        assert report.env_var_count == 1

    def test_warnings_do_not_fail(self, tmp_path: Path) -> None:
        """Missing env vars and tiers are warnings."""
        path = write_module(tmp_path, "go.json", make_module("go"))

        report = validate_module_file(path)

        assert report.result.is_valid is True
        assert "No environment variables found in module" in report.result.warnings
        assert "No operational_tiers defined" in report.result.warnings

    def test_checks_can_be_disabled(self, tmp_path: Path) -> None:
        document = make_module("go", operational_tiers={"deployment": ["moon"]})
        path = write_module(tmp_path, "go.json", document)

        report = validate_module_file(path, env_vars=False, tiers=False)

        assert report.result.is_valid is True
        assert report.result.warnings == []

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = write_module(tmp_path, "go.json", "{")

        report = validate_module_file(path)

        assert report.result.is_valid is False
        assert report.result.errors[0].startswith("Invalid JSON")


class TestValidateModules:
    """Tests for validate_modules."""

    def test_reports_every_module(self, modules_dir: Path) -> None:
        write_module(modules_dir, "development/go.json", make_module("go"))
        write_module(modules_dir, "devops/bad.json", make_module("Bad"))

        reports = validate_modules(modules_dir)

        assert [r.path.name for r in reports] == ["go.json", "bad.json"]
        assert [r.result.is_valid for r in reports] == [True, False]

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            validate_modules(tmp_path / "missing")
