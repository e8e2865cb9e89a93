"""Read-only summary of what the token store currently holds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from spotify_client.auth.clock import Clock, default_clock
from spotify_client.auth.store import TOKEN_KEYS, TokenStore


@dataclass(frozen=True)
class TokenStatus:
    key: str
    present: bool
    expired: bool
    expires_at: int | None = None
    has_refresh_token: bool = False
    scope: str = ""

    @property
    def expires_at_iso(self) -> str | None:
        if self.expires_at is None:
            return None
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc).isoformat()

    @property
    def label(self) -> str:
        if not self.present:
            return "missing"
        if self.expires_at is None:
            return "unknown expiry"
        return "expired" if self.expired else "valid"


def token_status(
    store: TokenStore,
    *,
    keys: Iterable[str] = TOKEN_KEYS,
    clock: Clock = default_clock,
) -> list[TokenStatus]:
    """Return one :class:`TokenStatus` per key, in *keys* order."""
    statuses: list[TokenStatus] = []
    for key in keys:
        record = store.retrieve(key)
        if record is None:
            statuses.append(TokenStatus(key=key, present=False, expired=True))
            continue
        statuses.append(
            TokenStatus(
                key=key,
                present=True,
                expired=record.is_expired(clock=clock),
                expires_at=record.expires_at,
                has_refresh_token=bool(record.refresh_token),
                scope=record.scope,
            )
        )
    return statuses
