"""Unit tests for token_status."""

from __future__ import annotations

from spotify_client.auth.models import TokenRecord
from spotify_client.auth.status import TokenStatus, token_status
from spotify_client.auth.store import (
    AUTHORIZATION_CODE_KEY,
    CLIENT_CREDENTIALS_KEY,
    MemoryTokenStore,
)
from tests.helpers import FakeClock


def test_empty_store_reports_missing(clock: FakeClock):
    statuses = token_status(MemoryTokenStore(), clock=clock)

    assert [s.key for s in statuses] == [CLIENT_CREDENTIALS_KEY, AUTHORIZATION_CODE_KEY]
    assert all(s.label == "missing" and s.expired for s in statuses)


def test_reports_validity_and_refresh_token(clock: FakeClock):
    now = int(clock())
    store = MemoryTokenStore()
    store.store(CLIENT_CREDENTIALS_KEY, TokenRecord("cc", expires_at=now - 1))
    store.store(
        AUTHORIZATION_CODE_KEY,
        TokenRecord("ac", expires_at=now + 60, refresh_token="ref1", scope="user-read-email"),
    )

    cc, ac = token_status(store, clock=clock)

    assert (cc.label, cc.has_refresh_token) == ("expired", False)
    assert (ac.label, ac.has_refresh_token, ac.scope) == ("valid", True, "user-read-email")
    assert ac.expires_at == now + 60


def test_unknown_expiry_label(clock: FakeClock):
    store = MemoryTokenStore()
    store.store(AUTHORIZATION_CODE_KEY, TokenRecord("ac", expires_at=None))

    (status,) = token_status(store, keys=[AUTHORIZATION_CODE_KEY], clock=clock)

    assert status.expired is True
    assert status.label == "unknown expiry"
    assert status.expires_at_iso is None


def test_expires_at_iso_is_utc():
    status = TokenStatus(key="k", present=True, expired=False, expires_at=0)
    assert status.expires_at_iso == "1970-01-01T00:00:00+00:00"
