"""fretwise: scoring pipeline for guitar practice sessions."""

__version__ = "0.1.0"
