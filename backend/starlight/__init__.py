"""Starlight network topology engine."""

__version__ = "1.0.0"
