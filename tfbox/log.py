"""Logging configuration using loguru.

Intercepts stdlib logging so that httpx, urllib3 and the docker SDK all
flow through loguru with a unified format.  Log records go to stderr;
Terraform's own output is written to stdout/stderr by the runner and never
passes through here.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Map stdlib level name -> loguru level
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk the call stack so loguru reports the real call-site
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


_CLI_FORMAT = "<level>tfbox {level}</level>: {message}"
_DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> "
    "<cyan>{name}:{line}</cyan> {message}"
)

# Held at WARNING unless debugging.
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "docker")


def setup_logging(level: str = "WARNING") -> None:
    """Send tfbox and library logs to stderr through loguru.

    Above DEBUG the output is a bare ``tfbox LEVEL: message`` line so it
    reads as tool output next to Terraform's.  At DEBUG the source location
    and a timestamp are added.
    """
    level = level.upper()
    verbose = logger.level(level).no <= logger.level("DEBUG").no

    logger.remove()
    logger.add(sys.stderr, level=level, format=_DEBUG_FORMAT if verbose else _CLI_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
