"""Local HTTP listener that captures the OAuth redirect.

Handlers are intentionally thin:

1. Read the query string.
2. Delegate validation and code capture to :class:`OAuthFlowHandler`.
3. Render a small HTML status page.

The Starlette app is served by ``uvicorn`` on a dedicated daemon thread with
its own event loop, so a caller blocked in
:meth:`OAuthFlowHandler.wait_for_callback` never starves the listener.
:meth:`CallbackServer.stop` signals the server to exit and releases the port.

SECURITY NOTE
-------------
No authorization codes or full ``state`` values are ever logged.
"""

from __future__ import annotations

import html
import logging
import threading
import time
import uuid
from typing import Final
from urllib.parse import urlparse

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp

from spotify_client.auth.errors import AuthConfigError, AuthError
from spotify_client.auth.flow import CallbackOutcome, OAuthFlowHandler
from spotify_client.auth.log_utils import get_auth_logger

_LOG = logging.getLogger("spotify-client.auth.callback")

DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 8080
DEFAULT_CALLBACK_PATH: Final[str] = "/callback"
_CORRELATION_HEADER: Final[str] = "X-Correlation-ID"

_PAGE_STYLE = (
    "body{font-family:-apple-system,BlinkMacSystemFont,sans-serif;"
    "text-align:center;padding:50px}"
    ".container{max-width:500px;margin:0 auto}"
    ".ok{color:#1db954}.error{color:#e74c3c}"
)
_AUTO_CLOSE = "<script>setTimeout(function(){window.close();},3000);</script>"


def _html_page(title: str, body: str, status: int = 200, *, css: str = "ok", auto_close: bool = False) -> HTMLResponse:
    """Return a tiny success / error HTML page."""
    content = (
        "<!doctype html><html lang='en'><head><meta charset='utf-8'>"
        f"<title>{html.escape(title)}</title><style>{_PAGE_STYLE}</style></head>"
        f"<body><div class='container'><h1>{html.escape(title)}</h1>"
        f"<p class='{css}'>{html.escape(body)}</p></div>"
        f"{_AUTO_CLOSE if auto_close else ''}</body></html>"
    )
    return HTMLResponse(content, status_code=status)


def render_outcome(outcome: CallbackOutcome) -> HTMLResponse:
    if outcome.kind in ("captured", "duplicate"):
        return _html_page("Authorization Successful", outcome.message, auto_close=True)
    if outcome.kind == "waiting":
        return _html_page("Spotify Authorization", outcome.message)
    return _html_page("Authorization Failed", outcome.message, outcome.status_code, css="error")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a per-request correlation ID and echo it in the response."""

    def __init__(self, app: ASGIApp, header_name: str = _CORRELATION_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def build_callback_app(flow: OAuthFlowHandler, *, callback_path: str = DEFAULT_CALLBACK_PATH) -> Starlette:
    """Return the Starlette app answering the authorization redirect."""

    async def _callback(request: Request) -> Response:
        outcome = flow.handle_callback(dict(request.query_params))
        get_auth_logger(
            base_logger_name="spotify-client.auth.callback",
            flow=flow.authenticator.flow_name,
            correlation_id=getattr(request.state, "correlation_id", None),
        ).info("Callback handled outcome=%s status=%s", outcome.kind, outcome.status_code)
        return render_outcome(outcome)

    async def _waiting(request: Request) -> Response:
        return _html_page(
            "Spotify Authorization",
            "Waiting for authorization... This page only completes the login flow.",
        )

    return Starlette(
        routes=[
            Route(callback_path, _callback, methods=["GET"]),
            Route("/{path:path}", _waiting, methods=["GET"]),
        ],
        middleware=[Middleware(CorrelationIdMiddleware)],
    )


class CallbackServer:
    """Runs :func:`build_callback_app` for the duration of one login."""

    def __init__(
        self,
        flow: OAuthFlowHandler,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        callback_path: str = DEFAULT_CALLBACK_PATH,
        startup_timeout: float = 5.0,
        redirect_uri: str | None = None,
    ) -> None:
        self.flow = flow
        self.host = host
        self.port = port
        self.callback_path = callback_path
        self.startup_timeout = startup_timeout
        self._redirect_uri = redirect_uri
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def from_redirect_uri(cls, flow: OAuthFlowHandler, redirect_uri: str, **kwargs) -> "CallbackServer":  # noqa: ANN003
        """Listen where a registered redirect URI points.

        Only the bind address and the path are derived. The URI string itself
        is kept verbatim, as the authorization server matches it exactly.

        Raises
        ------
        AuthConfigError
            If the URI is not a plain ``http`` URL with a host.
        """
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname:
            raise AuthConfigError(
                f"Redirect URI {redirect_uri!r} must be an http:// URL served by the local listener"
            )
        try:
            port = parsed.port or 80
        except ValueError as exc:
            raise AuthConfigError(f"Redirect URI {redirect_uri!r} has an invalid port") from exc
        return cls(
            flow,
            parsed.hostname,
            port,
            callback_path=parsed.path or "/",
            redirect_uri=redirect_uri,
            **kwargs,
        )

    @property
    def redirect_uri(self) -> str:
        if self._redirect_uri is not None:
            return self._redirect_uri
        return f"http://{self.host}:{self.port}{self.callback_path}"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> str:
        """Bind the listener and return the redirect URI it serves.

        Raises
        ------
        AuthError
            If the listener could not bind within ``startup_timeout``.
        """
        if self.running:
            return self.redirect_uri

        config = uvicorn.Config(
            build_callback_app(self.flow, callback_path=self.callback_path),
            host=self.host,
            port=self.port,
            log_level="warning",
            lifespan="off",
        )
        server = uvicorn.Server(config)
        # The caller owns process signals; the listener only stops via stop().
        server.install_signal_handlers = lambda: None  # type: ignore[method-assign]
        thread = threading.Thread(target=server.run, name="spotify-oauth-callback", daemon=True)
        self._server, self._thread = server, thread
        thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not server.started:
            if not thread.is_alive() or time.monotonic() > deadline:
                self.stop()
                raise AuthError(f"Could not start callback server on {self.host}:{self.port}")
            time.sleep(0.05)

        _LOG.info("Callback server listening on %s", self.redirect_uri)
        return self.redirect_uri

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the listener to exit and wait for the port to be released."""
        server, thread = self._server, self._thread
        self._server = self._thread = None
        if server is None or thread is None:
            return
        server.should_exit = True
        thread.join(timeout)
        if thread.is_alive():
            _LOG.warning("Callback server thread did not exit within %ss", timeout)
        else:
            _LOG.info("Callback server on %s:%s stopped", self.host, self.port)

    def __enter__(self) -> "CallbackServer":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        self.stop()
