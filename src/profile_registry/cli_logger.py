"""Console output for profile-registry commands.

Status lines share one rich console so build progress, validation results
and errors interleave in the order they happen.
"""

from rich.console import Console

from profile_registry.validation import ValidationResult

_console = Console()


def success(message: str) -> None:
    """Report a completed build, validation or scaffold."""
    _console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """Report a failure."""
    _console.print(f"[red]✗[/red] {message}")


def warning(message: str) -> None:
    """Report something worth fixing that does not fail the command."""
    _console.print(f"[yellow]![/yellow] {message}")


def info(message: str) -> None:
    _console.print(message)


def dim(message: str) -> None:
    """Hints and secondary details."""
    _console.print(f"[dim]{message}[/dim]")


def step(message: str) -> None:
    """Build stage progress."""
    _console.print(f"[blue]→[/blue] {message}")


def validation_result(result: ValidationResult, indent: str = "  ") -> None:
    """Print every error of a validation result, then every warning."""
    for message in result.errors:
        error(f"{indent}{message}")
    for message in result.warnings:
        warning(f"{indent}{message}")
