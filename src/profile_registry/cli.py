"""profile-registry CLI entry point."""

import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from rich import filesize
from rich.console import Console
from rich.table import Table

from profile_registry import __version__, cli_logger, exit_codes
from profile_registry.builder import (
    DuplicateModuleError,
    ModulesDirectoryNotFoundError,
    RegistryBuildError,
    RegistryBuilder,
)
from profile_registry.config import DuplicatePolicy, RegistryConfig, load_config
from profile_registry.errors import handle_cli_error
from profile_registry.lint import validate_modules
from profile_registry.module_schema import ModuleLoadError
from profile_registry.patterns import (
    ModuleFileNotFoundError,
    OperationalTiers,
    PatternNotFoundError,
    PatternSource,
    apply_pattern,
    find_module_file,
    find_pattern,
    load_patterns,
    validate_custom_patterns,
)
from profile_registry.scaffold import create_module
from profile_registry.stats import check_registry, collect_stats

app = typer.Typer(
    name="profile-registry",
    help="Validate shell profile modules and build the module registry.",
    no_args_is_help=True,
)

patterns_app = typer.Typer(
    help="List, inspect, validate and apply operational tier patterns.",
    no_args_is_help=True,
)
app.add_typer(patterns_app, name="patterns")

# Standalone builder with the same flags as the build command
builder_app = typer.Typer(
    name="registry-builder",
    help="Generate index.json, categories.json and version metadata from modules.",
    add_completion=False,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Config file. Defaults to ./profile-registry.yaml if present."),
]
ModulesDirOption = Annotated[
    Path | None,
    typer.Option("--modules-dir", help="Modules directory [default: ./modules]"),
]
RegistryDirOption = Annotated[
    Path | None,
    typer.Option("--registry-dir", help="Registry output directory [default: ./registry]"),
]
PatternsDirOption = Annotated[
    Path | None,
    typer.Option("--patterns-dir", help="Custom patterns directory [default: ./patterns]"),
]


def resolve_config(config_file: Path | None, **overrides: Any) -> RegistryConfig:
    """Load config and apply command-line overrides.

    Raises:
        typer.Exit: With INVALID_ARGS if the config cannot be loaded.
    """
    try:
        return load_config(config_file).with_overrides(**overrides)
    except (ValueError, FileNotFoundError) as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.INVALID_ARGS) from e


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        cli_logger.info(f"profile-registry {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Validate shell profile modules and build the module registry."""


@app.command()
def build(
    modules_dir: ModulesDirOption = None,
    registry_dir: RegistryDirOption = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Base URL written into index.json"),
    ] = None,
    on_duplicate: Annotated[
        DuplicatePolicy | None,
        typer.Option(
            "--on-duplicate",
            help="When two files define the same module: keep the later one, or fail.",
        ),
    ] = None,
    atomic: Annotated[
        bool | None,
        typer.Option(
            "--atomic/--no-atomic",
            help="Publish artifacts only after every stage succeeded [default: atomic]",
        ),
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """Build the registry from the modules directory.

    Scans every module, then writes index.json, categories.json and
    versions/<category>/<module>-v<version>.json. Every build is a full
    regeneration.
    """
    config = resolve_config(
        config_file,
        modules_dir=modules_dir,
        registry_dir=registry_dir,
        base_url=base_url,
        on_duplicate=on_duplicate,
        atomic=atomic,
    )
    builder = RegistryBuilder(config, on_progress=cli_logger.step)

    try:
        result = builder.build()
    except ModulesDirectoryNotFoundError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.MODULES_DIR_NOT_FOUND) from e
    except DuplicateModuleError as e:
        cli_logger.error(str(e))
        cli_logger.dim("  • Rename one of the modules or use --on-duplicate overwrite")
        raise typer.Exit(exit_codes.MODULE_INVALID) from e
    except RegistryBuildError as e:
        cli_logger.error(f"Registry build failed: {e}")
        if not config.atomic:
            cli_logger.dim("  • Artifacts in the registry directory may be inconsistent; re-run the build")
        if isinstance(e.__cause__, ModuleLoadError):
            raise typer.Exit(exit_codes.MODULE_INVALID) from e
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    for duplicate in result.duplicates:
        cli_logger.warning(
            f"Module '{duplicate.name}' defined more than once; "
            f"using {duplicate.kept}, ignoring {duplicate.replaced}"
        )

    cli_logger.success(f"Registry generated with {result.module_count} module(s) in {config.registry_dir}")
    cli_logger.dim(f"  {len(result.written)} file(s) written at {result.generated_at}")
    raise typer.Exit(exit_codes.SUCCESS)


builder_app.command()(build)


@app.command()
def validate(
    modules_dir: ModulesDirOption = None,
    env_vars: Annotated[
        bool,
        typer.Option("--env-vars/--no-env-vars", help="Check environment variable declarations."),
    ] = True,
    tiers: Annotated[
        bool,
        typer.Option("--tiers/--no-tiers", help="Check operational tiers."),
    ] = True,
    config_file: ConfigOption = None,
) -> None:
    """Validate module files against the registry conventions.

    Checks JSON syntax, required fields, naming, categories, environment
    variables and operational tiers. Exits non-zero if any module fails.
    """
    config = resolve_config(config_file, modules_dir=modules_dir)

    try:
        reports = validate_modules(config.modules_dir, env_vars=env_vars, tiers=tiers)
    except FileNotFoundError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.MODULES_DIR_NOT_FOUND) from e

    if not reports:
        cli_logger.warning(f"No module files found in {config.modules_dir}")
        raise typer.Exit(exit_codes.SUCCESS)

    invalid = 0
    warning_count = 0
    env_var_count = 0
    for report in reports:
        cli_logger.info(f"Checking module: {report.path.relative_to(config.modules_dir)}")
        cli_logger.validation_result(report.result)
        if not report.result.is_valid:
            invalid += 1
        warning_count += len(report.result.warnings)
        env_var_count += report.env_var_count

    cli_logger.info("")
    cli_logger.info(
        f"Modules: {len(reports)}, invalid: {invalid}, warnings: {warning_count}, "
        f"environment variables: {env_var_count}"
    )

    if invalid:
        cli_logger.error("Validation failed")
        raise typer.Exit(exit_codes.VALIDATION_FAILED)

    cli_logger.success("All modules are valid")
    raise typer.Exit(exit_codes.SUCCESS)


@app.command("new-module")
def new_module(
    name: Annotated[str, typer.Option("--name", help="Module name (lowercase, digits, hyphens).")],
    category: Annotated[str, typer.Option("--category", help="Module category.")],
    description: Annotated[str, typer.Option("--description", help="One-line description.")],
    author: Annotated[
        str | None,
        typer.Option("--author", help="Author, e.g. 'Jane Doe <jane@example.com>'."),
    ] = None,
    modules_dir: ModulesDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Create a new module from the standard template."""
    config = resolve_config(config_file, modules_dir=modules_dir)

    try:
        module_path = create_module(config.modules_dir, name, category, description, author)
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.INVALID_ARGS) from e
    except FileExistsError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    cli_logger.success(f"Created module {module_path}")
    cli_logger.dim(f"  • Edit {module_path} to add your configuration")
    cli_logger.dim("  • Run 'profile-registry validate' to check it")
    cli_logger.dim("  • Run 'profile-registry build' to update the registry")
    raise typer.Exit(exit_codes.SUCCESS)


@app.command()
def stats(
    modules_dir: ModulesDirOption = None,
    registry_dir: RegistryDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Show module count, category count and registry size."""
    config = resolve_config(config_file, modules_dir=modules_dir, registry_dir=registry_dir)

    try:
        summary = collect_stats(config.modules_dir, config.registry_dir)
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    cli_logger.info("[bold]Registry statistics[/bold]")
    cli_logger.info(f"Modules: {summary.module_files}")
    if summary.categories is None:
        cli_logger.info("Categories: not built")
        cli_logger.dim("  • Run 'profile-registry build' to generate categories.json")
    else:
        cli_logger.info(f"Categories: {summary.categories}")
    cli_logger.info(f"Total size: {filesize.decimal(summary.registry_bytes)}")
    raise typer.Exit(exit_codes.SUCCESS)


@app.command("validate-registry")
def validate_registry(
    registry_dir: RegistryDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Check that every registry file is valid JSON and matches its schema."""
    config = resolve_config(config_file, registry_dir=registry_dir)

    try:
        checked, issues = check_registry(config.registry_dir)
    except FileNotFoundError as e:
        cli_logger.error(str(e))
        cli_logger.dim("  • Run 'profile-registry build' first")
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    for issue in issues:
        cli_logger.error(f"{issue.path.relative_to(config.registry_dir)}: {issue.message}")

    if issues:
        cli_logger.error(f"{len(issues)} of {checked} registry file(s) invalid")
        raise typer.Exit(exit_codes.VALIDATION_FAILED)

    cli_logger.success(f"All {checked} registry file(s) are valid")
    raise typer.Exit(exit_codes.SUCCESS)


def _format_tiers(tiers: OperationalTiers | dict[str, Any] | None) -> list[str]:
    if tiers is None:
        return ["  None defined"]
    if isinstance(tiers, OperationalTiers):
        tiers = tiers.model_dump()
    return [
        f"  Deployment: {', '.join(tiers.get('deployment') or [])}",
        f"  Environments: {', '.join(tiers.get('environments') or [])}",
        f"  Constraints: {', '.join(tiers.get('constraints') or [])}",
    ]


@patterns_app.command("list")
def list_patterns(
    registry_dir: RegistryDirOption = None,
    patterns_dir: PatternsDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """List available patterns."""
    config = resolve_config(config_file, registry_dir=registry_dir, patterns_dir=patterns_dir)

    try:
        entries = load_patterns(config.registry_dir, config.patterns_dir)
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    if not entries:
        cli_logger.info("No patterns found")
        raise typer.Exit(exit_codes.SUCCESS)

    table = Table(show_header=True, header_style="bold")
    table.add_column("SLUG", style="cyan")
    table.add_column("NAME")
    table.add_column("SOURCE")
    for entry in entries:
        table.add_row(entry.slug, entry.pattern.name, entry.source.value)
    console.print(table)
    raise typer.Exit(exit_codes.SUCCESS)


@patterns_app.command("show")
def show_pattern(
    slug: Annotated[str, typer.Argument(help="Pattern slug.")],
    registry_dir: RegistryDirOption = None,
    patterns_dir: PatternsDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Show details for one pattern."""
    config = resolve_config(config_file, registry_dir=registry_dir, patterns_dir=patterns_dir)

    try:
        entry = find_pattern(slug, config.registry_dir, config.patterns_dir)
    except PatternNotFoundError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.PATTERN_NOT_FOUND) from e
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    pattern = entry.pattern
    cli_logger.info(f"[bold]{entry.source.value.capitalize()} pattern: {entry.slug}[/bold]")
    cli_logger.info(f"Name: {pattern.name}")
    cli_logger.info(f"Description: {pattern.description}")
    if pattern.version:
        cli_logger.info(f"Version: {pattern.version}")
    if entry.source != PatternSource.OFFICIAL:
        cli_logger.info(f"Author: {pattern.author_name or 'Unknown'}")
    if pattern.votes is not None:
        cli_logger.info(f"Votes: {pattern.votes}")
    if pattern.recommended_for:
        cli_logger.info(f"Recommended for: {', '.join(pattern.recommended_for)}")
    if pattern.use_cases:
        cli_logger.info(f"Use cases: {', '.join(pattern.use_cases)}")

    cli_logger.info("")
    cli_logger.info("Operational Tiers:")
    for line in _format_tiers(pattern.operational_tiers):
        cli_logger.info(line)

    if pattern.examples:
        cli_logger.info("")
        cli_logger.info("Example modules:")
        for example in pattern.examples:
            cli_logger.info(f"  - {example.module_name}: {example.description}")

    raise typer.Exit(exit_codes.SUCCESS)


@patterns_app.command("apply")
def apply(
    slug: Annotated[str, typer.Argument(help="Pattern slug.")],
    module: Annotated[str, typer.Argument(help="Module name.")],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-d", help="Show what would change without writing."),
    ] = False,
    backup: Annotated[
        bool,
        typer.Option("--backup/--no-backup", help="Keep a .backup copy of the module file."),
    ] = True,
    modules_dir: ModulesDirOption = None,
    registry_dir: RegistryDirOption = None,
    patterns_dir: PatternsDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Apply a pattern's operational tiers to a module."""
    config = resolve_config(
        config_file,
        modules_dir=modules_dir,
        registry_dir=registry_dir,
        patterns_dir=patterns_dir,
    )

    try:
        module_path = find_module_file(config.modules_dir, module)
        entry = find_pattern(slug, config.registry_dir, config.patterns_dir)
        result = apply_pattern(entry, module_path, dry_run=dry_run, backup=backup)
    except ModuleFileNotFoundError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.MODULE_NOT_FOUND) from e
    except PatternNotFoundError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.PATTERN_NOT_FOUND) from e
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    if result.dry_run:
        cli_logger.warning(f"Dry run: pattern '{slug}' was not applied to '{module}'")
        cli_logger.info("Current operational tiers:")
        for line in _format_tiers(result.previous):
            cli_logger.info(line)
        cli_logger.info("Would apply these operational tiers:")
        for line in _format_tiers(result.applied):
            cli_logger.info(line)
        raise typer.Exit(exit_codes.SUCCESS)

    cli_logger.success(f"Applied pattern '{slug}' to module '{module}'")
    if result.backup_path is not None:
        cli_logger.dim(f"  Backup created: {result.backup_path}")
    raise typer.Exit(exit_codes.SUCCESS)


@patterns_app.command("validate")
def validate_patterns(
    registry_dir: RegistryDirOption = None,
    patterns_dir: PatternsDirOption = None,
    config_file: ConfigOption = None,
) -> None:
    """Validate custom patterns: slugs, conflicts and tier values."""
    config = resolve_config(config_file, registry_dir=registry_dir, patterns_dir=patterns_dir)

    try:
        reports = validate_custom_patterns(config.registry_dir, config.patterns_dir)
    except ValueError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.GENERAL_ERROR) from e

    if not reports:
        cli_logger.info(f"No custom patterns found in {config.patterns_dir}")
        raise typer.Exit(exit_codes.SUCCESS)

    invalid = 0
    for report in reports:
        cli_logger.info(f"Checking pattern: {report.path.name}")
        cli_logger.validation_result(report.result)
        if not report.result.is_valid:
            invalid += 1

    if invalid:
        cli_logger.error(f"{invalid} of {len(reports)} pattern(s) invalid")
        raise typer.Exit(exit_codes.VALIDATION_FAILED)

    cli_logger.success(f"All {len(reports)} custom pattern(s) are valid")
    raise typer.Exit(exit_codes.SUCCESS)


def main_cli() -> None:
    """CLI entry point with top-level exception handling.

    Wraps the Typer app to catch any unhandled exceptions and format them
    as clean error messages instead of raw tracebacks.
    """
    try:
        app()
    except Exception as e:
        sys.exit(handle_cli_error(e))


def builder_cli() -> None:
    """Entry point for the standalone registry-builder command."""
    try:
        builder_app()
    except Exception as e:
        sys.exit(handle_cli_error(e))


if __name__ == "__main__":
    main_cli()
