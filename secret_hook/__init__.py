"""Pre-commit secret scanning for staged git changes."""

__version__ = "0.1.0"
