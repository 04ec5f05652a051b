"""Logging configuration for scripts and applications using chord_tuner.

The library itself only creates module loggers; call setup_logging() once at
startup to route them to stdout.
"""

import logging
import sys

# Default levels per logger
MODULE_LOG_LEVELS = {
    "chord_tuner": logging.INFO,
    "chord_tuner.analyzer": logging.INFO,
    "chord_tuner.autocorrelation": logging.WARNING,  # Per-frame, very noisy at DEBUG
    "chord_tuner.mono_detector": logging.INFO,
    "chord_tuner.targeted_detector": logging.INFO,
    "chord_tuner.chord_peaks": logging.INFO,
    "chord_tuner.chords": logging.INFO,
    "chord_tuner.tunings": logging.INFO,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_console_handler: logging.Handler | None = None


def setup_logging(level: str | None = None) -> None:
    """Set up logging for the chord_tuner loggers.

    Args:
        level: If provided, override every chord_tuner level with this one
            (e.g. "DEBUG").

    Raises:
        ValueError: If level is not a known logging level name
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid log level: {level}")
        log_levels = {name: numeric_level for name in log_levels}

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)
        if _console_handler not in logger.handlers:
            logger.addHandler(_console_handler)
        logger.propagate = False
