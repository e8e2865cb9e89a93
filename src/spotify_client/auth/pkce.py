"""PKCE (Proof Key for Code Exchange) helpers.

RFC 7636 defines PKCE to protect public OAuth clients.  The mechanism relies on
a *code verifier* (random high-entropy string) generated at the beginning of
the flow and a *code challenge* derived from that verifier that is sent to the
authorization endpoint.  The verifier itself only travels with the token
exchange request.

Only the S256 transformation is implemented; Spotify rejects ``plain``.

This module intentionally performs **no logging** of verifiers or challenges.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

# 32 random bytes -> 43 base64url characters, the RFC-7636 minimum length.
_VERIFIER_BYTES: Final[int] = 32


def _b64url(data: bytes) -> str:
    """Base64-URL encode *without* padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(num_bytes: int = _VERIFIER_BYTES) -> str:
    """Generate a high-entropy code verifier.

    Parameters
    ----------
    num_bytes:
        Random bytes to encode, 32-96 (yielding 43-128 characters).

    Returns
    -------
    str
        The base64url-encoded verifier without padding.
    """
    if not 32 <= num_bytes <= 96:
        raise ValueError("code verifier must be built from 32-96 random bytes")
    return _b64url(secrets.token_bytes(num_bytes))


def code_challenge_s256(verifier: str) -> str:
    """Compute the *S256* PKCE code challenge for a given verifier.

    Parameters
    ----------
    verifier:
        The code verifier string.

    Returns
    -------
    str
        Base64url-encoded SHA-256 hash without padding.
    """
    return _b64url(sha256(verifier.encode("ascii")).digest())
