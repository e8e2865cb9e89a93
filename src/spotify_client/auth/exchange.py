"""Token endpoint client.

Performs the three grant requests Spotify's accounts service understands and
turns the JSON answers into :class:`~spotify_client.auth.models.TokenRecord`
objects.  ``expires_at`` is derived here, from the injected clock, at the
moment the response is received.

Failures are never retried in this layer: non-2xx answers, transport errors
and unparsable bodies all become :class:`AuthExchangeError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Final, Mapping

import requests

from spotify_client.auth.clock import Clock, default_clock, epoch_seconds
from spotify_client.auth.errors import AuthExchangeError
from spotify_client.auth.models import TokenRecord
from spotify_client.utils.logging import mask_sensitive

_LOG = logging.getLogger("spotify-client.auth.exchange")

DEFAULT_ACCOUNTS_URL: Final[str] = "https://accounts.spotify.com"
TOKEN_PATH: Final[str] = "/api/token"
DEFAULT_EXPIRES_IN: Final[int] = 3600

_HEADERS: Final[dict[str, str]] = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


# --------------------------------------------------------------------------- #
# Grant request shapes                                                        #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class ClientCredentialsGrant:
    grant_type: ClassVar[str] = "client_credentials"

    def form(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class AuthorizationCodeGrant:
    code: str
    redirect_uri: str
    code_verifier: str | None = None
    grant_type: ClassVar[str] = "authorization_code"

    def form(self) -> dict[str, str]:
        body = {"code": self.code, "redirect_uri": self.redirect_uri}
        if self.code_verifier:
            body["code_verifier"] = self.code_verifier
        return body


@dataclass(frozen=True)
class RefreshTokenGrant:
    refresh_token: str
    grant_type: ClassVar[str] = "refresh_token"

    def form(self) -> dict[str, str]:
        return {"refresh_token": self.refresh_token}


Grant = ClientCredentialsGrant | AuthorizationCodeGrant | RefreshTokenGrant


def parse_token_response(data: Mapping[str, Any], *, clock: Clock = default_clock) -> TokenRecord:
    """Convert a token endpoint JSON object into a :class:`TokenRecord`.

    Raises
    ------
    AuthExchangeError
        If ``access_token`` is missing or ``expires_in`` is not an integer.
    """
    access_token = data.get("access_token")
    if not access_token:
        raise AuthExchangeError("Token response missing access_token")
    try:
        expires_in = int(data.get("expires_in", DEFAULT_EXPIRES_IN))
    except (TypeError, ValueError):
        raise AuthExchangeError("Token response has a non-numeric expires_in") from None

    return TokenRecord(
        access_token=access_token,
        token_type=data.get("token_type") or "Bearer",
        expires_in=expires_in,
        expires_at=epoch_seconds(clock) + expires_in,
        refresh_token=data.get("refresh_token"),
        scope=data.get("scope") or "",
    )


# --------------------------------------------------------------------------- #
# Client                                                                      #
# --------------------------------------------------------------------------- #
class TokenExchangeClient:
    """POSTs grant requests to ``{accounts_url}/api/token``."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        accounts_url: str = DEFAULT_ACCOUNTS_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = accounts_url.rstrip("/") + TOKEN_PATH
        self.timeout = timeout
        self.clock = clock
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ------------------------------------------------------------------ #
    # Convenience wrappers                                               #
    # ------------------------------------------------------------------ #
    def request_client_credentials(self) -> TokenRecord:
        return self.send(ClientCredentialsGrant())

    def exchange_authorization_code(
        self, code: str, redirect_uri: str, code_verifier: str | None = None
    ) -> TokenRecord:
        return self.send(AuthorizationCodeGrant(code, redirect_uri, code_verifier))

    def refresh(self, refresh_token: str) -> TokenRecord:
        return self.send(RefreshTokenGrant(refresh_token))

    # ------------------------------------------------------------------ #
    # Transport                                                          #
    # ------------------------------------------------------------------ #
    def send(self, grant: Grant) -> TokenRecord:
        """Perform *grant* and return the parsed token record."""
        payload: dict[str, str] = {
            "grant_type": grant.grant_type,
            **grant.form(),
            "client_id": self.client_id,
            "client_secret": self.client_secret,  # noqa: S105
        }
        _LOG.debug(
            "POST %s grant_type=%s client_id=%s",
            self.token_url,
            grant.grant_type,
            mask_sensitive(self.client_id, 6),
        )
        try:
            resp = self.session.post(
                self.token_url, data=payload, headers=_HEADERS, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise AuthExchangeError(
                f"Token request failed: {exc}", grant_type=grant.grant_type
            ) from exc

        # requests treats 3xx as ok; only a 2xx answer carries a token
        if not 200 <= resp.status_code < 300:
            raise AuthExchangeError(
                f"Token endpoint returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                body=resp.text,
                grant_type=grant.grant_type,
            )

        try:
            data = resp.json()
        except ValueError:
            raise AuthExchangeError(
                "Token endpoint returned a non-JSON body",
                status_code=resp.status_code,
                body=resp.text,
                grant_type=grant.grant_type,
            ) from None
        if not isinstance(data, dict):
            raise AuthExchangeError(
                "Token endpoint returned an unexpected JSON document",
                status_code=resp.status_code,
                body=resp.text,
                grant_type=grant.grant_type,
            )

        try:
            record = parse_token_response(data, clock=self.clock)
        except AuthExchangeError as exc:
            raise AuthExchangeError(
                str(exc),
                status_code=resp.status_code,
                body=resp.text,
                grant_type=grant.grant_type,
            ) from None

        _LOG.info(
            "Obtained %s token (expires in %ss)", grant.grant_type, record.expires_in
        )
        return record
