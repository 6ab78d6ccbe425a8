"""Exit codes for profile-registry CLI commands."""

# Success
SUCCESS = 0

# Errors
GENERAL_ERROR = 1
INVALID_ARGS = 2
MODULES_DIR_NOT_FOUND = 3
MODULE_NOT_FOUND = 4
MODULE_INVALID = 5
PATTERN_NOT_FOUND = 6
VALIDATION_FAILED = 7
