"""End-to-end token lifecycle against a stubbed token endpoint.

Runs the real callback listener on a free local port; only the HTTPS call to
the accounts service is replaced, so these tests are safe for CI.
"""

from __future__ import annotations

import socket
import threading
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from spotify_client.auth.errors import AuthTimeoutError
from spotify_client.auth.manager import AuthenticatorManager
from spotify_client.auth.store import AUTHORIZATION_CODE_KEY, FileTokenStore
from spotify_client.config import SpotifyAuthConfig
from tests.helpers import FakeClock, FakeSession, fake_response, token_payload

pytestmark = [pytest.mark.integration, pytest.mark.ci_safe]


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def config(tmp_path) -> SpotifyAuthConfig:
    return SpotifyAuthConfig(
        client_id="abc",
        client_secret="shh-secret",
        redirect_uri=f"http://127.0.0.1:{_free_port()}/callback",
        scopes=("user-read-email",),
        default_flow="authorization_code",
        token_storage_path=tmp_path / "tokens.json",
        callback_timeout=10.0,
    )


def _browser(state_override: str | None = None):
    """Return an ``on_authorization_url`` hook that follows the consent redirect."""
    responses: list[httpx.Response] = []

    def _follow(url: str) -> None:
        params = {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}
        callback = params["redirect_uri"]
        state = state_override or params["state"]

        def _hit() -> None:
            responses.append(httpx.get(callback, params={"code": "XYZ", "state": state}))

        threading.Thread(target=_hit, daemon=True).start()

    _follow.responses = responses  # type: ignore[attr-defined]
    return _follow


def test_login_persist_restart_and_refresh(config: SpotifyAuthConfig, clock: FakeClock):
    session = FakeSession(
        fake_response(200, token_payload("tok1", refresh_token="ref1", scope="user-read-email"))
    )
    manager = AuthenticatorManager(config, session=session, clock=clock)
    auth = manager.driver()
    browser = _browser()

    record = auth.login(open_browser=False, timeout=10, on_authorization_url=browser)

    assert record.access_token == "tok1"
    assert record.expires_at == int(clock()) + 3600
    assert browser.responses[0].status_code == 200
    exchange_call = session.calls[0]["data"]
    assert exchange_call["grant_type"] == "authorization_code"
    assert exchange_call["code"] == "XYZ"
    assert exchange_call["redirect_uri"] == config.redirect_uri
    assert "code_verifier" in exchange_call

    # a fresh process sees the persisted token without touching the network
    restarted = AuthenticatorManager(
        config, FileTokenStore(config.token_storage_path), session=session, clock=clock
    )
    assert restarted.get_access_token() == "tok1"
    assert len(session.calls) == 1

    clock.advance(3600)
    session.queue(fake_response(200, token_payload("tok2")))
    assert restarted.get_access_token() == "tok2"
    refresh_call = session.calls[-1]["data"]
    assert refresh_call == {
        "grant_type": "refresh_token",
        "refresh_token": "ref1",
        "client_id": "abc",
        "client_secret": "shh-secret",
    }
    stored = FileTokenStore(config.token_storage_path).retrieve(AUTHORIZATION_CODE_KEY)
    assert (stored.access_token, stored.refresh_token, stored.scope) == ("tok2", "ref1", "user-read-email")


def test_login_with_forged_state_times_out(config: SpotifyAuthConfig, clock: FakeClock):
    session = FakeSession()
    manager = AuthenticatorManager(config, session=session, clock=clock)
    browser = _browser(state_override="f" * 32)

    with pytest.raises(AuthTimeoutError):
        manager.driver().login(open_browser=False, timeout=1, on_authorization_url=browser)

    assert browser.responses and browser.responses[0].status_code == 400
    assert session.calls == []
    assert not manager.store.exists(AUTHORIZATION_CODE_KEY)


def test_client_credentials_reissued_after_expiry(config: SpotifyAuthConfig, clock: FakeClock):
    session = FakeSession(
        fake_response(200, token_payload("cc1", expires_in=10)),
        fake_response(200, token_payload("cc2", expires_in=10)),
    )
    manager = AuthenticatorManager(config, session=session, clock=clock)

    assert manager.get_access_token("client_credentials") == "cc1"
    assert manager.get_access_token("client_credentials") == "cc1"
    clock.advance(11)
    assert manager.get_access_token("client_credentials") == "cc2"

    assert session.grant_types() == ["client_credentials", "client_credentials"]
