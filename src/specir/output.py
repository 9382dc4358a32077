"""Diagnostic logging with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stderr** -- every log record (warnings about unresolved references,
  malformed schema corners, unreachable documents).  Installed by
  :func:`configure_logging` as a :class:`rich.logging.RichHandler` on the
  ``specir`` logger.
* **stdout** -- left to the caller; nothing here writes to it.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``no_color`` argument; Rich markup is only emitted to a TTY.
"""

from __future__ import annotations

import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "specir"


def configure_logging(
    verbose: bool = False,
    quiet: bool = False,
    no_color: bool = False,
) -> logging.Handler:
    """Route ``specir`` log records to stderr through Rich.

    Any handler previously installed by this function is replaced, so it is
    safe to call more than once.

    Args:
        verbose: Emit debug records (cache hits, reference cycle stops).
        quiet: Only emit errors.
        no_color: Disable colour and markup.

    Returns:
        The installed handler.
    """
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    disable_color = no_color or _should_disable_color()
    console = Console(
        file=sys.stderr,
        stderr=True,
        no_color=disable_color,
        force_terminal=False if disable_color or not _is_tty() else None,
    )
    handler = RichHandler(
        console=console,
        level=level,
        show_time=False,
        show_path=verbose,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.set_name(_LOGGER_NAME)

    logger = logging.getLogger(_LOGGER_NAME)
    for existing in list(logger.handlers):
        if existing.get_name() == _LOGGER_NAME:
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def _is_tty() -> bool:
    """Check if stderr is a TTY."""
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False
