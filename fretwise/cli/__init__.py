"""Command-line interface for fretwise."""

from .main import cli

__all__ = ["cli"]
