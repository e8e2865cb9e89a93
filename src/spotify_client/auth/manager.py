"""Selects and memoises the configured authenticator.

A plain registry keyed by flow name; each factory builds its authenticator
from the shared :class:`SpotifyAuthConfig`, token store and exchange client.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

import requests

from spotify_client.auth.authenticators import (
    Authenticator,
    AuthorizationCodeAuthenticator,
    ClientCredentialsAuthenticator,
)
from spotify_client.auth.clock import Clock, default_clock
from spotify_client.auth.errors import AuthConfigError
from spotify_client.auth.exchange import TokenExchangeClient
from spotify_client.auth.store import FileTokenStore, TokenStore

if TYPE_CHECKING:  # pragma: no cover
    from spotify_client.config import SpotifyAuthConfig

_LOG = logging.getLogger("spotify-client.auth.manager")


class AuthenticatorManager:
    """Factory/registry returning one authenticator per flow name."""

    def __init__(
        self,
        config: "SpotifyAuthConfig",
        store: TokenStore | None = None,
        *,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
    ) -> None:
        self.config = config
        self.store = store if store is not None else FileTokenStore(config.token_storage_path)
        self.clock = clock
        self.exchange = TokenExchangeClient(
            config.client_id,
            config.client_secret,
            accounts_url=config.accounts_url,
            timeout=config.http_timeout,
            session=session,
            clock=clock,
        )
        self._factories: dict[str, Callable[[], Authenticator]] = {
            "client_credentials": self._create_client_credentials,
            "authorization_code": self._create_authorization_code,
        }
        self._drivers: dict[str, Authenticator] = {}
        self._lock = threading.Lock()

    @property
    def default_driver(self) -> str:
        return self.config.default_flow

    @property
    def available_drivers(self) -> tuple[str, ...]:
        return tuple(self._factories)

    def driver(self, name: str | None = None) -> Authenticator:
        """Return the authenticator for *name* (default flow when omitted)."""
        name = name or self.default_driver
        factory = self._factories.get(name)
        if factory is None:
            raise AuthConfigError(
                f"Unsupported auth flow '{name}'. Expected one of {', '.join(self._factories)}."
            )
        with self._lock:
            if name not in self._drivers:
                self.config.require_credentials()
                self._drivers[name] = factory()
                _LOG.debug("Created %s authenticator", name)
            return self._drivers[name]

    def get_access_token(self, name: str | None = None) -> str:
        return self.driver(name).get_access_token()

    # ---------------- factories ------------------------------------------ #
    def _create_client_credentials(self) -> ClientCredentialsAuthenticator:
        return ClientCredentialsAuthenticator(self.exchange, self.store, clock=self.clock)

    def _create_authorization_code(self) -> AuthorizationCodeAuthenticator:
        return AuthorizationCodeAuthenticator(
            self.exchange,
            self.store,
            self.config.redirect_uri,
            scopes=self.config.scopes,
            accounts_url=self.config.accounts_url,
            callback_timeout=self.config.callback_timeout,
            use_pkce=self.config.use_pkce,
            clock=self.clock,
        )
