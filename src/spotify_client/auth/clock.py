"""Time source used for every token expiry decision.

Authenticators, the exchange client and the flow handler take a ``clock``
argument instead of reading the system time, so tests can pin and advance
"now" (see ``tests/helpers.FakeClock``).

>>> from spotify_client.auth.clock import epoch_seconds
>>> epoch_seconds(lambda: 1700000000.9)
1700000000
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Any zero-argument callable returning UNIX time in seconds."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Wall-clock time from :func:`time.time`."""
    return time.time()


def epoch_seconds(clock: Clock = default_clock) -> int:
    """Return the clock reading truncated to whole seconds.

    ``expires_at`` is persisted as an integer, so every issuer stamps it
    through this helper.
    """
    return int(clock())
