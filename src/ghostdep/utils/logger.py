"""Logging setup for ghostdep.

Modules log through logging.getLogger(__name__), all under the 'ghostdep'
namespace. setup_logging() attaches a single Rich handler writing to stderr,
so the report on stdout stays clean.
"""
import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

from ..config import LogLevel

ROOT_LOGGER = 'ghostdep'
LOG_PREFIX = 'ghost-dep-check'

LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class _PrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return f"[{LOG_PREFIX}] {super().format(record)}"


def to_logging_level(level: Union[LogLevel, int, str]) -> int:
    return LEVEL_MAP[LogLevel.parse(level)]


def setup_logging(level: Union[LogLevel, int, str] = LogLevel.INFO) -> logging.Logger:
    """Configure the ghostdep logger.

    Safe to call once per run: the handler installed by a previous call is
    replaced, never duplicated.

    Args:
        level: Minimum level to emit

    Returns:
        The configured 'ghostdep' logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(to_logging_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, '_ghostdep_handler', False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(_PrefixFormatter('%(message)s'))
    handler._ghostdep_handler = True
    logger.addHandler(handler)

    return logger
