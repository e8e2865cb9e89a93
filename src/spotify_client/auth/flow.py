"""Interactive authorization-code handshake.

:class:`OAuthFlowHandler` owns the single :class:`PendingAuthorization` of an
:class:`AuthorizationCodeAuthenticator`:

1. :meth:`~OAuthFlowHandler.begin` creates the CSRF ``state`` (and optionally
   a PKCE verifier/challenge) and returns the consent URL.
2. The local callback app feeds every redirect into
   :meth:`~OAuthFlowHandler.handle_callback`, which validates ``state`` in
   constant time and captures the code exactly once.
3. :meth:`~OAuthFlowHandler.wait_for_callback` blocks the *calling* thread on
   an event (never the listener) and exchanges the code for tokens.

This module is HTTP-agnostic: it only sees query parameters and returns a
:class:`CallbackOutcome` the web layer renders.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Iterable, Literal, Mapping
from urllib.parse import urlencode

from spotify_client.auth.clock import Clock, default_clock
from spotify_client.auth.errors import (
    AuthError,
    AuthorizationInProgressError,
    AuthTimeoutError,
    StateMismatchError,
)
from spotify_client.auth.exchange import DEFAULT_ACCOUNTS_URL
from spotify_client.auth.log_utils import get_auth_logger
from spotify_client.auth.models import AuthorizationRequest, PendingAuthorization, TokenRecord
from spotify_client.auth.pkce import code_challenge_s256, generate_code_verifier
from spotify_client.auth.state import generate_state, states_match

if TYPE_CHECKING:  # pragma: no cover
    from spotify_client.auth.authenticators import AuthorizationCodeAuthenticator

_LOG = logging.getLogger("spotify-client.auth.flow")

AUTHORIZE_PATH: Final[str] = "/authorize"

OutcomeKind = Literal["captured", "duplicate", "invalid_state", "provider_error", "waiting"]


@dataclass(frozen=True)
class CallbackOutcome:
    """What the callback web layer should answer with."""

    kind: OutcomeKind
    status_code: int
    message: str


class OAuthFlowHandler:
    """Pending-authorization bookkeeping for one authenticator instance."""

    def __init__(
        self,
        authenticator: "AuthorizationCodeAuthenticator",
        *,
        accounts_url: str = DEFAULT_ACCOUNTS_URL,
        callback_timeout: float = 120.0,
        clock: Clock = default_clock,
    ) -> None:
        self.authenticator = authenticator
        self.authorize_url = accounts_url.rstrip("/") + AUTHORIZE_PATH
        self.callback_timeout = callback_timeout
        self.clock = clock
        self._lock = threading.Lock()
        self._pending: PendingAuthorization | None = None
        self._code_event = threading.Event()

    @property
    def pending(self) -> PendingAuthorization | None:
        return self._pending

    # ------------------------------------------------------------------ #
    # Authorization URL                                                  #
    # ------------------------------------------------------------------ #
    def begin(
        self,
        scopes: Iterable[str],
        *,
        redirect_uri: str | None = None,
        client_id: str | None = None,
        use_pkce: bool = False,
    ) -> AuthorizationRequest:
        """Start a new pending authorization and build its consent URL.

        Raises
        ------
        AuthorizationInProgressError
            If a previous, not yet stale, authorization is still pending.
        """
        redirect_uri = redirect_uri or self.authenticator.redirect_uri
        client_id = client_id or self.authenticator.exchange.client_id
        scope_list = tuple(scopes)

        code_verifier = code_challenge = None
        if use_pkce:
            code_verifier = generate_code_verifier()
            code_challenge = code_challenge_s256(code_verifier)

        with self._lock:
            current = self._pending
            if current is not None:
                if not current.is_stale(self.callback_timeout, clock=self.clock):
                    raise AuthorizationInProgressError()
                _LOG.info("Replacing stale pending authorization state=%s****", current.state[:6])

            pending = PendingAuthorization(
                state=generate_state(),
                redirect_uri=redirect_uri,
                scopes=scope_list,
                code_verifier=code_verifier,
                code_challenge=code_challenge,
                created_at=self.clock(),
            )
            self._pending = pending
            self._code_event = threading.Event()

        params: dict[str, str] = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": " ".join(scope_list),
            "state": pending.state,
            "show_dialog": "true",  # force the consent screen every time
        }
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"

        url = f"{self.authorize_url}?{urlencode(params)}"
        get_auth_logger(
            base_logger_name="spotify-client.auth.flow",
            flow=self.authenticator.flow_name,
            state=pending.state,
        ).debug("Built authorization URL (pkce=%s)", use_pkce)
        return AuthorizationRequest(
            url=url,
            state=pending.state,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
        )

    def generate_authorization_url(
        self, client_id: str, redirect_uri: str, scopes: Iterable[str]
    ) -> str:
        """Return the consent URL for a plain (non-PKCE) authorization."""
        return self.begin(scopes, redirect_uri=redirect_uri, client_id=client_id).url

    def generate_authorization_url_with_pkce(
        self, client_id: str, redirect_uri: str, scopes: Iterable[str]
    ) -> AuthorizationRequest:
        """Like :meth:`generate_authorization_url` but with a PKCE challenge.

        The returned request carries the ``code_verifier``; it is kept in the
        pending authorization as well and sent only at exchange time.
        """
        return self.begin(
            scopes, redirect_uri=redirect_uri, client_id=client_id, use_pkce=True
        )

    # ------------------------------------------------------------------ #
    # Callback handling                                                  #
    # ------------------------------------------------------------------ #
    def validate_state(self, received_state: str | None) -> bool:
        pending = self._pending
        return pending is not None and states_match(pending.state, received_state)

    def _capture(self, code: str, state: str) -> CallbackOutcome:
        with self._lock:
            pending = self._pending
            if pending is None or not states_match(pending.state, state):
                raise StateMismatchError()
            if pending.captured:
                _LOG.warning("Ignoring repeated callback for state=%s****", pending.state[:6])
                return CallbackOutcome(
                    "duplicate", 200, "Authorization already received. You can close this window."
                )
            pending.received_code = code
            self._code_event.set()
        _LOG.info("Authorization code received for state=%s****", state[:6])
        return CallbackOutcome(
            "captured", 200, "You can now close this window and return to your terminal."
        )

    def handle_callback(self, params: Mapping[str, str]) -> CallbackOutcome:
        """Process one redirect hitting the callback path."""
        code = params.get("code")
        state = params.get("state")

        if code and state:
            try:
                return self._capture(code, state)
            except StateMismatchError as exc:
                # possible CSRF or a link from an older attempt
                _LOG.warning("Rejected callback: %s (state=%s****)", exc, state[:6])
                return CallbackOutcome("invalid_state", 400, str(exc))

        if "error" in params:
            error = params.get("error") or "unknown_error"
            description = params.get("error_description") or "Unknown error"
            _LOG.warning("Authorization server returned error=%s: %s", error, description)
            return CallbackOutcome(
                "provider_error", 400, f"Authorization failed: {error} - {description}"
            )

        return CallbackOutcome("waiting", 200, "Waiting for authorization...")

    # ------------------------------------------------------------------ #
    # Completion                                                         #
    # ------------------------------------------------------------------ #
    def wait_for_callback(self, timeout: float | None = None) -> TokenRecord:
        """Block until the code arrives, then exchange and store it.

        Raises
        ------
        AuthTimeoutError
            If no valid callback arrived within *timeout* seconds.
        """
        timeout = self.callback_timeout if timeout is None else timeout
        with self._lock:
            pending = self._pending
            event = self._code_event
        if pending is None:
            raise AuthError("No authorization in progress; generate an authorization URL first.")

        if not event.wait(timeout):
            self._discard(pending)
            raise AuthTimeoutError(timeout)

        code = pending.received_code
        try:
            if code is None:
                raise AuthError("Authorization was cancelled.")
            return self.authenticator.exchange_code_for_token(
                code,
                code_verifier=pending.code_verifier,
                redirect_uri=pending.redirect_uri,
            )
        finally:
            self._discard(pending)

    def cancel(self) -> None:
        """Abandon the pending authorization, waking any waiter."""
        with self._lock:
            pending, event = self._pending, self._code_event
            self._pending = None
        if pending is not None:
            event.set()
            _LOG.info("Cancelled pending authorization state=%s****", pending.state[:6])

    def _discard(self, pending: PendingAuthorization) -> None:
        with self._lock:
            if self._pending is pending:
                self._pending = None
