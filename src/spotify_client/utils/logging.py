"""Logging helpers shared by the auth core and the CLI."""

from __future__ import annotations

import logging
import sys

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything but the first *keep_chars* masked.

    >>> mask_sensitive("abcdef123456", 4)
    'abcd********'
    """
    if not value:
        return "<empty>"
    if len(value) <= keep_chars:
        return "*" * len(value)
    return value[:keep_chars] + "*" * min(len(value) - keep_chars, 8)


def setup_logging(level: int | str = logging.WARNING, stream=None) -> logging.Logger:  # noqa: ANN001
    """Configure the ``spotify-client`` logger tree for command-line use.

    Library code never calls this; embedding applications configure logging
    themselves.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = logging.getLogger("spotify-client")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)
    # uvicorn logs through its own loggers; keep them at the same verbosity
    logging.getLogger("uvicorn").setLevel(level)
    return logger
