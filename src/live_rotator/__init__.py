"""Product set rotation for live commerce sessions."""

__version__ = "1.0.0"
