"""
Unit tests for PKCE helpers and state (CSRF) helpers.

These tests are CI-safe (no network), cover:
* Code-verifier / S256 challenge generation
* State format and constant-time matching
"""

from __future__ import annotations

import base64
import re
from hashlib import sha256

import pytest

from spotify_client.auth.pkce import code_challenge_s256, generate_code_verifier
from spotify_client.auth.state import generate_state, states_match

ALLOWED_CHARS_RE = re.compile(r"^[A-Za-z0-9\-_]+$")  # base64url without padding


# --------------------------------------------------------------------------- #
# PKCE                                                                        #
# --------------------------------------------------------------------------- #
def test_generate_code_verifier_default_length() -> None:
    verifier = generate_code_verifier()
    assert len(verifier) == 43  # 32 bytes, base64url, no padding
    assert ALLOWED_CHARS_RE.match(verifier), "Verifier contains non-RFC chars"


def test_generate_code_verifier_is_random() -> None:
    assert generate_code_verifier() != generate_code_verifier()


def test_generate_code_verifier_invalid_size() -> None:
    with pytest.raises(ValueError):
        _ = generate_code_verifier(16)  # below minimum
    with pytest.raises(ValueError):
        _ = generate_code_verifier(200)  # above maximum


def test_code_challenge_s256_matches_reference() -> None:
    verifier = "test_verifier_1234567890"
    digest = sha256(verifier.encode("ascii")).digest()
    expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    assert code_challenge_s256(verifier) == expected
    assert "=" not in code_challenge_s256(verifier)


def test_code_challenge_rfc7636_appendix_b() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert code_challenge_s256(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


# --------------------------------------------------------------------------- #
# STATE                                                                       #
# --------------------------------------------------------------------------- #
def test_state_is_32_hex_chars() -> None:
    state = generate_state()
    assert re.fullmatch(r"[0-9a-f]{32}", state)
    assert state != generate_state()


@pytest.mark.parametrize(
    ("expected", "received", "match"),
    [
        ("abc123", "abc123", True),
        ("abc123", "abc124", False),
        ("abc123", "", False),
        ("abc123", None, False),
        (None, "abc123", False),
    ],
)
def test_states_match(expected, received, match) -> None:
    assert states_match(expected, received) is match
