"""profile-registry: build and maintain the shell profile module registry."""

__version__ = "0.1.0"
