"""Exception types raised by the token lifecycle core.

Only lightweight, **data-carrying** exceptions live here so that the CLI or any
embedding application can transform them into user-friendly messages.  None of
them ever holds a token, refresh token or client secret.
"""

from __future__ import annotations

from typing import Any


class AuthError(RuntimeError):
    """Base class for every authentication failure surfaced to callers."""

    code: str = "auth_error"

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


class NoTokenError(AuthError):
    """No authorization-code token is stored; the interactive flow must run."""

    code = "no_token"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No authorization code token found. Please complete OAuth flow first."
        )


class AuthExchangeError(AuthError):
    """The token endpoint failed or returned an unparsable body."""

    code = "exchange_failed"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        grant_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
        self.body: str | None = body
        self.grant_type: str | None = grant_type

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status_code"] = self.status_code
        payload["grant_type"] = self.grant_type
        # Provider error bodies are short JSON documents; cap just in case.
        payload["body"] = (self.body or "")[:200]
        return payload


class RefreshUnavailableError(AuthError):
    """Refresh attempted without a stored refresh token."""

    code = "refresh_unavailable"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No refresh token available")


class StateMismatchError(AuthError):
    """Callback ``state`` did not match the pending authorization."""

    code = "invalid_state"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Invalid state parameter")


class AuthTimeoutError(AuthError):
    """The interactive flow did not receive a callback in time."""

    code = "timeout"

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Timeout waiting for authorization callback after {timeout_seconds:g}s"
        )
        self.timeout_seconds = timeout_seconds


class AuthorizationInProgressError(AuthError):
    """A second interactive flow was started while one is still pending."""

    code = "authorization_in_progress"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "An authorization flow is already waiting for its callback."
        )


class StoreLockError(AuthError):
    """The token store lock stayed held by another writer."""

    code = "store_locked"


class StoreCorruptionError(AuthError):
    """Backing token store content is unparsable.

    File stores only raise this in *strict* mode; by default corruption is
    logged and the content treated as an empty map.
    """

    code = "store_corrupt"


class AuthConfigError(ValueError):
    """Configuration is missing or names an unknown authenticator."""
