"""Error messages for profile-registry.

Turns Pydantic validation errors on module, pattern and config documents
into one-line field messages, and maps exceptions that reach the CLI
boundary to exit codes.
"""

import json

import yaml
from pydantic import ValidationError

from profile_registry import cli_logger, exit_codes


def format_validation_errors(error: ValidationError) -> str:
    """Describe each failing field as "'<dotted.path>': <problem>".

    Messages are joined with "; " so a module load error stays on one line.
    """
    messages = []

    for err in error.errors():
        # e.g. "environment.0.name" or "operational_tiers.deployment"
        loc = ".".join(str(part) for part in err["loc"])

        error_type = err["type"]
        msg = err["msg"]

        if error_type == "missing":
            messages.append(f"'{loc}': field is required")
        elif error_type == "string_type":
            messages.append(f"'{loc}': expected string")
        elif error_type == "list_type":
            messages.append(f"'{loc}': expected list")
        elif error_type == "int_type":
            messages.append(f"'{loc}': expected integer")
        elif error_type == "bool_type":
            messages.append(f"'{loc}': expected boolean")
        elif error_type in ("model_type", "dict_type"):
            messages.append(f"'{loc}': expected object" if loc else "expected a JSON object")
        elif error_type == "extra_forbidden":
            messages.append(f"'{loc}': unknown setting")
        else:
            clean_msg = msg.lower()
            messages.append(f"'{loc}': {clean_msg}")

    return "; ".join(messages)


def handle_cli_error(error: Exception) -> int:
    """Report an exception no command handled and pick the exit code.

    Malformed documents exit with MODULE_INVALID; everything else,
    filesystem errors included, exits with GENERAL_ERROR.
    """
    if isinstance(error, ValidationError):
        cli_logger.error(f"Invalid {error.title} document: {format_validation_errors(error)}")
        return exit_codes.MODULE_INVALID

    if isinstance(error, json.JSONDecodeError):
        cli_logger.error(f"Invalid JSON at line {error.lineno}, column {error.colno}: {error.msg}")
        return exit_codes.MODULE_INVALID

    if isinstance(error, OSError):
        if error.filename:
            cli_logger.error(f"Cannot access {error.filename}: {error.strerror}")
        else:
            cli_logger.error(str(error))
        return exit_codes.GENERAL_ERROR

    if isinstance(error, yaml.YAMLError):
        cli_logger.error(f"Invalid YAML in config file: {error}")
        return exit_codes.GENERAL_ERROR

    cli_logger.error(f"Unexpected {type(error).__name__}: {error}")
    cli_logger.dim("  • Re-run with the same arguments and report the message above if it persists")
    return exit_codes.GENERAL_ERROR
