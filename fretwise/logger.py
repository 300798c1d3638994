"""Lazy logger lookup shared by every fretwise module."""
import logging
from typing import Dict

# Loggers handed out so far, keyed by dotted module name
_logger_cache: Dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for a fretwise module, creating it on first use.

    Handlers and levels are not touched here; ``setup_logging`` in
    ``fretwise.logging_config`` installs them once for the whole package.

    Args:
        name: The full module name (e.g., 'fretwise.note_matcher')

    Returns:
        The cached logger instance
    """
    logger = _logger_cache.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        _logger_cache[name] = logger
    return logger
