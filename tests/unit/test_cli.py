"""Tests for the spotify-auth command line."""

from __future__ import annotations

import functools

import pytest

from spotify_client import cli
from spotify_client.auth import store as store_module
from spotify_client.auth.models import TokenRecord
from spotify_client.auth.store import (
    AUTHORIZATION_CODE_KEY,
    CLIENT_CREDENTIALS_KEY,
    FileTokenStore,
)


@pytest.fixture()
def token_path(tmp_path, monkeypatch):
    path = tmp_path / "tokens.json"
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "abc")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "shh-secret")
    monkeypatch.setenv("SPOTIFY_TOKEN_STORAGE_PATH", str(path))
    monkeypatch.delenv("SPOTIFY_AUTH_FLOW", raising=False)
    # handlers bound to pytest's capture streams would outlive the test
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    return path


def test_status_lists_tokens(token_path, capsys):
    FileTokenStore(token_path).store(
        AUTHORIZATION_CODE_KEY, TokenRecord("secret-access", expires_at=4_000_000_000, refresh_token="r")
    )

    assert cli.main(["status"]) == 0

    out = capsys.readouterr().out
    assert "Client ID:     configured" in out
    assert f"{CLIENT_CREDENTIALS_KEY:<26} missing" in out
    assert f"{AUTHORIZATION_CODE_KEY:<26} valid" in out
    assert "secret-access" not in out


def test_status_without_credentials(token_path, monkeypatch, capsys):
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET")
    assert cli.main(["status"]) == 1
    assert "Client secret: missing" in capsys.readouterr().out


def test_logout_removes_only_selected_flow(token_path, capsys):
    store = FileTokenStore(token_path)
    store.store(CLIENT_CREDENTIALS_KEY, TokenRecord("cc", expires_at=4_000_000_000))
    store.store(AUTHORIZATION_CODE_KEY, TokenRecord("ac", expires_at=4_000_000_000))

    assert cli.main(["logout", "--flow", "authorization_code"]) == 0

    assert store.exists(CLIENT_CREDENTIALS_KEY)
    assert not store.exists(AUTHORIZATION_CODE_KEY)
    assert "Removed stored authorization_code token" in capsys.readouterr().out


def test_locked_store_reports_error(token_path, monkeypatch, capsys):
    FileTokenStore(token_path).store(CLIENT_CREDENTIALS_KEY, TokenRecord("cc", expires_at=4_000_000_000))
    token_path.with_suffix(".json.lock").touch()
    monkeypatch.setattr(
        store_module, "_file_lock", functools.partial(store_module._file_lock, retries=0, delay=0)
    )

    assert cli.main(["logout", "--flow", "client_credentials"]) == 1

    err = capsys.readouterr().err
    assert err.startswith("Error: Token store is locked")
    assert "Traceback" not in err


def test_token_prints_stored_access_token(token_path, capsys):
    FileTokenStore(token_path).store(
        AUTHORIZATION_CODE_KEY, TokenRecord("ac-token", expires_at=4_000_000_000)
    )
    assert cli.main(["token", "--flow", "authorization_code"]) == 0
    assert capsys.readouterr().out.strip() == "ac-token"


def test_token_without_login_reports_error(token_path, capsys):
    assert cli.main(["token", "--flow", "authorization_code"]) == 1
    assert "Please complete OAuth flow first" in capsys.readouterr().err


def test_missing_credentials_reports_error(token_path, monkeypatch, capsys):
    monkeypatch.delenv("SPOTIFY_CLIENT_ID")
    assert cli.main(["refresh"]) == 1
    assert "SPOTIFY_CLIENT_ID" in capsys.readouterr().err


def test_unknown_flow_choice_exits(token_path):
    with pytest.raises(SystemExit):
        cli.main(["token", "--flow", "implicit"])
