"""Structured logging helpers for the token lifecycle components.

Log records emitted through :func:`get_auth_logger` carry a fixed set of
*non-sensitive* context fields and nothing else:

- ``flow``           – ``client_credentials`` or ``authorization_code``
- ``state``          – the CSRF state of an interactive login, cut to 6 chars
- ``correlation_id`` – per-request id assigned by the callback app

Codes, tokens, verifiers and client secrets are never accepted as context.

Usage
-----
>>> from spotify_client.auth.log_utils import get_auth_logger
>>> log = get_auth_logger(
...     base_logger_name="spotify-client.auth.flow",
...     flow="authorization_code",
...     state="9f86d081884c7d659a2feaa0c55ad015",
... )
>>> log.info("Waiting for callback")
INFO spotify-client.auth.flow flow=authorization_code state=9f86d0 ...
"""

from __future__ import annotations

import logging
from typing import Any, Final, Mapping, MutableMapping

_STATE_PREFIX: Final[int] = 6


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Attach whitelisted auth context; call-site ``extra`` wins on conflicts."""

    extra_keys: Final[tuple[str, ...]] = ("flow", "state", "correlation_id")

    def __init__(self, logger: logging.Logger, context: Mapping[str, Any]) -> None:
        allowed = {k: context[k] for k in self.extra_keys if context.get(k) is not None}
        if "state" in allowed:
            allowed["state"] = str(allowed["state"])[:_STATE_PREFIX]
        super().__init__(logger, allowed)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "spotify-client.auth",
    flow: str | None = None,
    state: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with auth context."""
    return _AuthLoggerAdapter(
        logging.getLogger(base_logger_name),
        {"flow": flow, "state": state, "correlation_id": correlation_id},
    )
