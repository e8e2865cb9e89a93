"""Client-side OAuth 2.0 token management for the Spotify Web API."""

__version__ = "0.1.0"
