"""Centralized logging configuration for fretwise.

Every module obtains its logger through ``fretwise.logger.get_logger``; this
module decides where those records go and how verbose each area is.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    "fretwise": logging.INFO,
    # Scoring pipeline
    "fretwise.note_matcher": logging.INFO,  # DEBUG prints every expected/detected comparison
    "fretwise.tablature": logging.INFO,
    "fretwise.patterns": logging.INFO,
    "fretwise.session": logging.INFO,
    # Audio analysis
    "fretwise.audio": logging.INFO,
    "fretwise.audio.dsp_analyzer": logging.INFO,  # per-frame misses are DEBUG
    "fretwise.core": logging.INFO,
    "fretwise.cli": logging.WARNING,
    # Libraries/third-party
    "aubio": logging.ERROR,
    "sounddevice": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'fretwise' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    # Rebuilt on every call so it follows the current sys.stdout
    _console_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("fretwise"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        # Child loggers (e.g. fretwise.audio.tempo) propagate up to the
        # nearest configured ancestor, so only top-level names get the handler
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        if module_name in ("fretwise", ""):
            logger.addHandler(_console_handler)
            logger.propagate = False

    logging.getLogger("fretwise").debug("Logging configuration complete")
