"""
Logging for TestAdvisor

Components log through ``testadvisor.<component>`` loggers. Library use
leaves handler setup to the application; the CLI calls
``configure_logging`` once to send everything to a rich console on stderr.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "testadvisor"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Route ``testadvisor`` logs to stderr through rich

    Replaces any handlers from an earlier call, so the CLI can be invoked
    repeatedly in one process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)

    Returns:
        The ``testadvisor`` root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)
    root.debug(f"Logging configured at {logging.getLevelName(numeric_level)} level")
    return root


def get_logger(component: str) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("registry")``"""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


__all__ = ["ROOT_LOGGER", "configure_logging", "get_logger"]
