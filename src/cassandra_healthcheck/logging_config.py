"""
Logging setup for the command-line entry point.

Only the cassandra_healthcheck package logger gets a handler; the root
logger is left alone so embedding applications keep their own setup.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "cassandra_healthcheck"
DRIVER_LOGGER = "cassandra"


def configure_logging(debug: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Attach a stderr RichHandler to the package logger.

    Args:
        debug: Log at DEBUG (including per-event trace detail) instead
            of INFO, and let driver debug output through.
        console: Console to write to; defaults to stderr.

    Returns:
        The configured package logger.
    """
    level = logging.DEBUG if debug else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    _install(PACKAGE_LOGGER, handler, level)
    _install(DRIVER_LOGGER, handler, level if debug else logging.WARNING)
    return logging.getLogger(PACKAGE_LOGGER)


def _install(name: str, handler: logging.Handler, level: int) -> None:
    logger = logging.getLogger(name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
