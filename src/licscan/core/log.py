# log.py
# SPDX-License-Identifier: MIT
"""Logging for licscan.

The library never prints on its own: the ``licscan`` logger only carries a
NullHandler until an application (or the CLI) calls
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "configure_logging",
]

PACKAGE_LOGGER_NAME = "licscan"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Marks the handler configure_logging owns so repeat calls reuse it.
_OWNED = "_licscan_owned"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name``'s logger, or the package logger when omitted."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    *,
    level: int | str = logging.WARNING,
    stream: IO[str] | None = None,
    fmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Route licscan log records to a stream.

    Calling this again re-targets the same handler instead of stacking a new
    one, so the CLI can apply ``--log-level`` and then a config file's
    ``[logging]`` table without duplicating output.

    Args:
        level (int | str): Level or level name such as ``"DEBUG"``.
        stream (IO[str] | None): Destination; the current ``sys.stderr``
            when omitted.
        fmt (str | None): Record format; :data:`DEFAULT_FORMAT` when omitted.
        propagate (bool | None): Pass records on to ancestor loggers. None
            means yes, which keeps pytest's ``caplog`` working.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    logger.propagate = True if propagate is None else propagate

    target = stream if stream is not None else sys.stderr
    handler = next((h for h in logger.handlers if getattr(h, _OWNED, False)), None)
    if handler is None:
        handler = logging.StreamHandler(target)
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)
    elif handler.stream is not target:
        if getattr(handler.stream, "closed", False):
            handler.stream = target
        else:
            handler.setStream(target)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    return logger
