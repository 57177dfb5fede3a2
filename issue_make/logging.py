"""Logging for the issue-make CLI.

Only the "issue_make" logger tree is configured; third-party loggers
(urllib3 from requests) keep their defaults.
Records go to stderr so they never mix with command output on stdout.

Level comes from settings.yaml (logging.level) or env LOGGING_LEVEL;
--verbose overrides it with DEBUG.
"""

import logging
import sys
from typing import TextIO

from issue_make.config import LoggingConfig

LOGGER_NAME = "issue_make"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"


def resolve_level(config: LoggingConfig, verbose: bool = False) -> int:
    """DEBUG when verbose, else the configured level (unknown names -> WARNING)."""
    if verbose:
        return logging.DEBUG
    return LEVELS.get(config.level.upper().strip(), logging.WARNING)


class IssueMakeLogging:
    """Attaches one stderr handler to the issue_make logger."""

    def __init__(self, config: LoggingConfig, verbose: bool = False, stream: TextIO | None = None) -> None:
        self._level = resolve_level(config, verbose)
        self._format = config.format or DEFAULT_FORMAT
        self._stream = stream

    def setup(self) -> logging.Logger:
        """Replace handlers on the issue_make logger; return it.

        Calling setup again (tests, repeated main() calls) does not stack
        handlers.
        """
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        handler = logging.StreamHandler(self._stream or sys.stderr)
        handler.setFormatter(logging.Formatter(self._format))
        logger.addHandler(handler)
        logger.setLevel(self._level)
        logger.propagate = False
        return logger
