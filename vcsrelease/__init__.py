"""Release coordination for version-control-backed builds."""

__version__ = "0.1.0"
