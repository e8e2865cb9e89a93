"""Typed records used by the token lifecycle logic."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from spotify_client.auth.clock import Clock, default_clock


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """Snapshot of an OAuth access token as persisted in the token store.

    ``expires_at`` is always computed locally when the token is obtained.  A
    record loaded without it (e.g. a hand-edited store file) keeps ``None``
    and is reported as expired.
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    expires_at: int | None = None
    refresh_token: str | None = None
    scope: str = ""

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* once ``now >= expires_at`` (or expiry is unknown)."""
        if self.expires_at is None:
            return True
        return clock() >= self.expires_at

    def seconds_remaining(self, *, clock: Clock = default_clock) -> int:
        if self.expires_at is None:
            return 0
        return max(0, int(self.expires_at - clock()))

    @property
    def scopes(self) -> list[str]:
        return self.scope.split() if self.scope else []

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type or 'Bearer'} {self.access_token}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
            "scope": self.scope,
        }
        # client-credentials tokens have no refresh token; keep the key absent
        if self.refresh_token is not None:
            data["refresh_token"] = self.refresh_token
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenRecord":
        """Build a record from persisted JSON.

        Raises
        ------
        KeyError
            If ``access_token`` is missing.
        ValueError
            If numeric fields cannot be coerced.
        """
        expires_at = data.get("expires_at")
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
            expires_in=int(data.get("expires_in") or 0),
            expires_at=int(expires_at) if expires_at is not None else None,
            refresh_token=data.get("refresh_token"),
            scope=str(data.get("scope") or ""),
        )


@dataclass(slots=True)
class PendingAuthorization:
    """In-memory handshake state for one interactive login.

    Never persisted: it carries the PKCE verifier and the CSRF ``state``.
    """

    state: str
    redirect_uri: str
    scopes: tuple[str, ...] = ()
    code_verifier: str | None = None
    code_challenge: str | None = None
    received_code: str | None = None
    created_at: float = field(default_factory=default_clock)

    @property
    def captured(self) -> bool:
        return self.received_code is not None

    def is_stale(self, ttl_seconds: float, *, clock: Clock = default_clock) -> bool:
        """Return *True* if the authorization outlived *ttl_seconds*."""
        return (clock() - self.created_at) > ttl_seconds


@dataclass(frozen=True, slots=True)
class AuthorizationRequest:
    """What the caller needs to send the user to the consent screen."""

    url: str
    state: str
    redirect_uri: str
    code_verifier: str | None = None
