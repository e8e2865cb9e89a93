"""Spotify OAuth 2.0 token lifecycle core.

This namespace hosts the building blocks that acquire, cache, validate and
refresh access tokens for the Spotify Web API.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
models
    Token record and the in-memory pending authorization.
errors
    Exception types used by the token logic.
store
    Durable key -> token persistence (JSON file or memory).
exchange
    Token endpoint client for the three grant types.
authenticators
    Client-credentials and authorization-code strategies.
pkce / state
    Proof-Key for Code Exchange and CSRF ``state`` helpers.
flow / callback
    Interactive login handshake and its local HTTP listener.
manager
    Configuration-driven authenticator registry.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock  # noqa: F401
from .errors import (  # noqa: F401
    AuthConfigError,
    AuthError,
    AuthExchangeError,
    AuthorizationInProgressError,
    AuthTimeoutError,
    NoTokenError,
    RefreshUnavailableError,
    StateMismatchError,
    StoreCorruptionError,
    StoreLockError,
)
from .models import AuthorizationRequest, PendingAuthorization, TokenRecord  # noqa: F401
from .store import (  # noqa: F401
    AUTHORIZATION_CODE_KEY,
    CLIENT_CREDENTIALS_KEY,
    FileTokenStore,
    MemoryTokenStore,
    TokenStore,
)
from .pkce import code_challenge_s256, generate_code_verifier  # noqa: F401
from .state import generate_state, states_match  # noqa: F401
from .exchange import TokenExchangeClient  # noqa: F401
from .authenticators import (  # noqa: F401
    Authenticator,
    AuthorizationCodeAuthenticator,
    ClientCredentialsAuthenticator,
)
from .flow import CallbackOutcome, OAuthFlowHandler  # noqa: F401
from .log_utils import get_auth_logger  # noqa: F401
from .manager import AuthenticatorManager  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    # errors
    "AuthConfigError",
    "AuthError",
    "AuthExchangeError",
    "AuthorizationInProgressError",
    "AuthTimeoutError",
    "NoTokenError",
    "RefreshUnavailableError",
    "StateMismatchError",
    "StoreCorruptionError",
    "StoreLockError",
    # models
    "AuthorizationRequest",
    "PendingAuthorization",
    "TokenRecord",
    # store
    "AUTHORIZATION_CODE_KEY",
    "CLIENT_CREDENTIALS_KEY",
    "FileTokenStore",
    "MemoryTokenStore",
    "TokenStore",
    # pkce / state
    "code_challenge_s256",
    "generate_code_verifier",
    "generate_state",
    "states_match",
    # exchange + strategies
    "TokenExchangeClient",
    "Authenticator",
    "AuthorizationCodeAuthenticator",
    "ClientCredentialsAuthenticator",
    # interactive flow
    "CallbackOutcome",
    "OAuthFlowHandler",
    # logging helpers
    "get_auth_logger",
    # registry
    "AuthenticatorManager",
]
