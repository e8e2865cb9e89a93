"""Utility functions for reading typed values from the environment."""

import logging
import os
import re
from typing import Final, Tuple

logger = logging.getLogger("spotify-client.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")
_FALSY: Final[Tuple[str, ...]] = ("false", "0", "no", "n", "off")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def env_flag(name: str, default: bool = False) -> bool:
    """Return a boolean flag; unrecognised values fall back to *default*."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    if _truthy(raw):
        return True
    if raw.strip().lower() in _FALSY:
        return False
    logger.warning("Ignoring unrecognised boolean %s=%r", name, raw)
    return default


def env_float(name: str, default: float) -> float:
    """Return a positive number from *name*, or *default* when unset/invalid."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value


def env_list(name: str, default: Tuple[str, ...] = ()) -> Tuple[str, ...]:
    """Split a space- or comma-separated variable into a tuple."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(item for item in re.split(r"[\s,]+", raw.strip()) if item)
