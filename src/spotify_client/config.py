"""Configuration for the Spotify token lifecycle core.

Values are read from environment variables by :meth:`SpotifyAuthConfig.from_env`;
embedding applications may also build the dataclass directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from spotify_client.auth.errors import AuthConfigError
from spotify_client.auth.exchange import DEFAULT_ACCOUNTS_URL
from spotify_client.auth.store import DEFAULT_TOKEN_PATH
from spotify_client.utils.environment import env_flag, env_float, env_list

logger = logging.getLogger("spotify-client.config")

FLOW_NAMES: Final[tuple[str, ...]] = ("client_credentials", "authorization_code")

DEFAULT_REDIRECT_URI: Final[str] = "http://127.0.0.1:8080/callback"
DEFAULT_SCOPES: Final[tuple[str, ...]] = (
    "user-read-private",
    "user-read-email",
    "playlist-read-private",
    "playlist-read-collaborative",
)


@dataclass(frozen=True)
class SpotifyAuthConfig:
    """Credentials and knobs consumed by the authenticators."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    default_flow: str = "client_credentials"
    token_storage_path: Path = DEFAULT_TOKEN_PATH
    http_timeout: float = 30.0
    callback_timeout: float = 120.0
    accounts_url: str = DEFAULT_ACCOUNTS_URL
    use_pkce: bool = True

    def __post_init__(self) -> None:
        if self.default_flow not in FLOW_NAMES:
            raise AuthConfigError(
                f"Unsupported auth flow '{self.default_flow}'. Expected one of {', '.join(FLOW_NAMES)}."
            )

    @classmethod
    def from_env(cls) -> "SpotifyAuthConfig":
        """Build the configuration from ``SPOTIFY_*`` environment variables."""
        storage = os.getenv("SPOTIFY_TOKEN_STORAGE_PATH")
        config = cls(
            client_id=os.getenv("SPOTIFY_CLIENT_ID", "").strip(),
            client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", "").strip(),
            redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI", "").strip() or DEFAULT_REDIRECT_URI,
            scopes=env_list("SPOTIFY_SCOPES", DEFAULT_SCOPES),
            default_flow=(os.getenv("SPOTIFY_AUTH_FLOW") or "client_credentials").strip().lower(),
            token_storage_path=Path(storage).expanduser() if storage else DEFAULT_TOKEN_PATH,
            http_timeout=env_float("SPOTIFY_HTTP_TIMEOUT", 30.0),
            callback_timeout=env_float("SPOTIFY_CALLBACK_TIMEOUT", 120.0),
            accounts_url=(os.getenv("SPOTIFY_ACCOUNTS_URL") or DEFAULT_ACCOUNTS_URL).rstrip("/"),
            use_pkce=env_flag("SPOTIFY_USE_PKCE", True),
        )
        logger.debug(
            "Loaded Spotify auth config flow=%s storage=%s",
            config.default_flow,
            config.token_storage_path,
        )
        return config

    def is_auth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def require_credentials(self) -> None:
        if not self.is_auth_configured():
            raise AuthConfigError(
                "Spotify credentials not configured; set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET."
            )
