"""Test doubles for the clock and the token endpoint."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any


class FakeClock:
    """Mutable clock; ``advance`` moves time forward."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fake_response(status_code: int = 200, payload: Any = None, *, text: str | None = None) -> SimpleNamespace:
    """Minimal stand-in for ``requests.Response``."""
    body = text if text is not None else json.dumps(payload if payload is not None else {})

    def _json() -> Any:
        return json.loads(body)

    return SimpleNamespace(
        ok=200 <= status_code < 400,  # mirrors requests.Response.ok
        status_code=status_code,
        text=body,
        json=_json,
    )


class FakeSession:
    """Records every POST and answers from a queue.

    Each answer is used once; when the queue runs dry the last answer used
    is repeated.
    """

    _UNSET = object()

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self._last: Any = self._UNSET
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def post(self, url: str, *, data: dict, headers: dict | None = None, timeout: float | None = None):  # noqa: ANN201
        self.calls.append(
            {"url": url, "data": dict(data), "headers": dict(headers or {}), "timeout": timeout}
        )
        if self.responses:
            self._last = self.responses.pop(0)
        elif self._last is self._UNSET:
            raise AssertionError("unexpected token endpoint call")
        answer = self._last
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(data)
        return answer

    def grant_types(self) -> list[str]:
        return [call["data"]["grant_type"] for call in self.calls]


def token_payload(access_token: str = "tok1", expires_in: int = 3600, **extra: Any) -> dict[str, Any]:
    return {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in, **extra}
