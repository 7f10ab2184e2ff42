"""Diagnostic logging for relkit.

User-facing progress goes through the console; this channel carries the
low-level details (every command line, failure payloads) and is only shown
with ``--verbose`` or ``--debug``.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["LOGGER_NAME", "configure_logging"]

LOGGER_NAME = "relkit"


def configure_logging(
    *,
    verbose: bool = False,
    debug: bool = False,
    stream: TextIO = sys.stderr,
) -> logging.Logger:
    """Attach a RichHandler to the ``relkit`` logger.

    Level is DEBUG with ``debug``, INFO with ``verbose``, WARNING otherwise.
    Calling it again replaces the previous handler.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(file=stream),
        show_time=debug,
        show_path=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
