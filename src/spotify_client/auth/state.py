"""State parameter helpers for the authorization-code flow.

The *state* parameter protects the user against CSRF: it is a fresh random
nonce bound to exactly one authorization attempt and echoed back by Spotify
on the redirect.  The local listener compares it with the pending value in
constant time.

Logging
-------
Only a short prefix of the state is ever logged; the full value is *never*
written to logs.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import Final

_LOG = logging.getLogger("spotify-client.auth.state")

_STATE_BYTES: Final[int] = 16  # 32 hex characters


def generate_state(num_bytes: int = _STATE_BYTES) -> str:
    """Return a cryptographically random, hex-encoded state value."""
    state = secrets.token_hex(num_bytes)
    _LOG.debug("Generated state=%s****", state[:6])
    return state


def states_match(expected: str | None, received: str | None) -> bool:
    """Constant-time comparison of the pending and the received state.

    Missing values on either side never match.
    """
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
