"""Validation result types for profile-registry.

Provides a simple dataclass for representing validation results with
specific error and warning messages.
"""

from dataclasses import dataclass, field


@dataclass
class ValidationResult:
    """Result of a validation operation.

    Attributes:
        is_valid: True if validation passed, False otherwise.
        errors: List of specific error messages if validation failed.
        warnings: Issues worth reporting that do not fail validation.
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: list[str], warnings: list[str] | None = None) -> "ValidationResult":
        """Build a result that is valid exactly when there are no errors."""
        return cls(is_valid=not errors, errors=errors, warnings=warnings or [])
