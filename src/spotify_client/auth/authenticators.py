"""Authenticator strategies for the two supported grant types.

Both variants keep their token in a shared :class:`TokenStore` under a fixed,
process-wide key, so two instances of the same flow operating on the same
store are aliases of a single logical token slot.

Refreshes are *single-flight* per instance: callers that find an expired token
serialise on a lock, re-read the store once they hold it and reuse a token a
concurrent caller already obtained.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from typing import TYPE_CHECKING, Callable, ClassVar, Iterable, Protocol, runtime_checkable

from spotify_client.auth.clock import Clock, default_clock
from spotify_client.auth.errors import NoTokenError, RefreshUnavailableError
from spotify_client.auth.exchange import DEFAULT_ACCOUNTS_URL, TokenExchangeClient
from spotify_client.auth.models import TokenRecord
from spotify_client.auth.store import (
    AUTHORIZATION_CODE_KEY,
    CLIENT_CREDENTIALS_KEY,
    TokenStore,
)

if TYPE_CHECKING:  # pragma: no cover
    from spotify_client.auth.flow import OAuthFlowHandler

_LOG = logging.getLogger("spotify-client.auth.authenticators")


@runtime_checkable
class Authenticator(Protocol):
    """Capability shared by every grant-type strategy."""

    flow_name: ClassVar[str]
    token_key: ClassVar[str]

    def get_access_token(self) -> str: ...

    def is_expired(self) -> bool: ...

    def refresh(self) -> TokenRecord: ...

    def forget(self) -> None: ...


class _StoredTokenAuthenticator:
    """Store/clock plumbing common to both strategies."""

    flow_name: ClassVar[str]
    token_key: ClassVar[str]

    def __init__(
        self,
        exchange: TokenExchangeClient,
        store: TokenStore,
        *,
        clock: Clock = default_clock,
    ) -> None:
        self.exchange = exchange
        self.store = store
        self.clock = clock
        self._refresh_lock = threading.Lock()

    def current_token(self) -> TokenRecord | None:
        """Return the stored record for this flow, valid or not."""
        return self.store.retrieve(self.token_key)

    def _is_usable(self, record: TokenRecord | None) -> bool:
        return record is not None and not record.is_expired(clock=self.clock)

    def is_expired(self) -> bool:
        return not self._is_usable(self.current_token())

    def forget(self) -> None:
        """Drop the stored token for this flow."""
        self.store.remove(self.token_key)
        _LOG.info("Removed stored %s token", self.flow_name)


class ClientCredentialsAuthenticator(_StoredTokenAuthenticator):
    """App-only tokens; never needs user interaction.

    This grant has no refresh token, so refreshing means requesting a new
    token.
    """

    flow_name: ClassVar[str] = "client_credentials"
    token_key: ClassVar[str] = CLIENT_CREDENTIALS_KEY

    def get_access_token(self) -> str:
        record = self.current_token()
        if self._is_usable(record):
            _LOG.debug("Using cached client credentials token")
            return record.access_token  # type: ignore[union-attr]

        with self._refresh_lock:
            # Another caller may have fetched a token while we waited.
            record = self.current_token()
            if self._is_usable(record):
                return record.access_token  # type: ignore[union-attr]
            return self._request_new_token().access_token

    def refresh(self) -> TokenRecord:
        with self._refresh_lock:
            return self._request_new_token()

    def _request_new_token(self) -> TokenRecord:
        record = self.exchange.request_client_credentials()
        self.store.store(self.token_key, record)
        return record


class AuthorizationCodeAuthenticator(_StoredTokenAuthenticator):
    """User-delegated tokens obtained through the interactive browser flow.

    This variant cannot bootstrap itself: until :meth:`exchange_code_for_token`
    (usually via :meth:`login`) has stored a token, :meth:`get_access_token`
    raises :class:`NoTokenError`.
    """

    flow_name: ClassVar[str] = "authorization_code"
    token_key: ClassVar[str] = AUTHORIZATION_CODE_KEY

    def __init__(
        self,
        exchange: TokenExchangeClient,
        store: TokenStore,
        redirect_uri: str,
        *,
        scopes: Iterable[str] = (),
        accounts_url: str = DEFAULT_ACCOUNTS_URL,
        callback_timeout: float = 120.0,
        use_pkce: bool = True,
        clock: Clock = default_clock,
    ) -> None:
        super().__init__(exchange, store, clock=clock)
        self.redirect_uri = redirect_uri
        self.scopes: tuple[str, ...] = tuple(scopes)
        self.accounts_url = accounts_url
        self.callback_timeout = callback_timeout
        self.use_pkce = use_pkce
        self._flow: OAuthFlowHandler | None = None

    # ------------------------------------------------------------------ #
    # Token access                                                       #
    # ------------------------------------------------------------------ #
    def get_access_token(self) -> str:
        record = self.current_token()
        if record is None:
            raise NoTokenError()
        if self._is_usable(record):
            return record.access_token

        with self._refresh_lock:
            latest = self.current_token()
            if latest is None:
                raise NoTokenError()
            if self._is_usable(latest):
                return latest.access_token
            _LOG.info("Authorization code token expired, refreshing")
            return self._refresh_record(latest).access_token

    def refresh(self) -> TokenRecord:
        with self._refresh_lock:
            record = self.current_token()
            if record is None:
                raise NoTokenError("No token to refresh")
            return self._refresh_record(record)

    def _refresh_record(self, record: TokenRecord) -> TokenRecord:
        if not record.refresh_token:
            raise RefreshUnavailableError()

        fresh = self.exchange.refresh(record.refresh_token)
        # Spotify may omit refresh_token and scope on refresh; keep the old ones.
        merged = TokenRecord(
            access_token=fresh.access_token,
            token_type=fresh.token_type,
            expires_in=fresh.expires_in,
            expires_at=fresh.expires_at,
            refresh_token=fresh.refresh_token or record.refresh_token,
            scope=fresh.scope or record.scope,
        )
        self.store.store(self.token_key, merged)
        return merged

    # ------------------------------------------------------------------ #
    # Initial setup                                                      #
    # ------------------------------------------------------------------ #
    def exchange_code_for_token(
        self,
        code: str,
        *,
        code_verifier: str | None = None,
        redirect_uri: str | None = None,
    ) -> TokenRecord:
        """Trade an authorization *code* for tokens and store them."""
        record = self.exchange.exchange_authorization_code(
            code, redirect_uri or self.redirect_uri, code_verifier
        )
        self.store.store(self.token_key, record)
        _LOG.info("Stored authorization code token (scope=%r)", record.scope)
        return record

    @property
    def flow(self) -> "OAuthFlowHandler":
        """The interactive flow handler bound to this authenticator."""
        if self._flow is None:
            from spotify_client.auth.flow import OAuthFlowHandler

            self._flow = OAuthFlowHandler(
                self,
                accounts_url=self.accounts_url,
                callback_timeout=self.callback_timeout,
                clock=self.clock,
            )
        return self._flow

    def login(
        self,
        scopes: Iterable[str] | None = None,
        *,
        open_browser: bool = True,
        timeout: float | None = None,
        use_pkce: bool | None = None,
        on_authorization_url: Callable[[str], None] | None = None,
    ) -> TokenRecord:
        """Run the complete interactive flow and return the stored token.

        Starts the local callback listener derived from ``redirect_uri``,
        sends the user to the consent page and blocks until the redirect
        arrives or *timeout* elapses.  *on_authorization_url* receives the
        consent URL so it can be shown for manual copy.
        """
        from spotify_client.auth.callback import CallbackServer

        server = CallbackServer.from_redirect_uri(self.flow, self.redirect_uri)
        redirect_uri = server.start()
        try:
            request = self.flow.begin(
                scopes if scopes is not None else self.scopes,
                redirect_uri=redirect_uri,
                use_pkce=self.use_pkce if use_pkce is None else use_pkce,
            )
            _LOG.info("Waiting for authorization on %s", redirect_uri)
            if on_authorization_url is not None:
                on_authorization_url(request.url)
            if open_browser:
                _open_browser(request.url)
            return self.flow.wait_for_callback(timeout)
        finally:
            server.stop()


def _open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        _LOG.warning("Could not open a browser: %s", exc)
        return
    if not opened:
        _LOG.warning("No browser available; visit the authorization URL manually")
