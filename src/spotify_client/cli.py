"""spotify-auth

Command-line entry point around :class:`AuthenticatorManager`.

Sub-commands
------------
* ``login``   – run the interactive authorization-code flow
* ``status``  – show which tokens are stored and whether they are valid
* ``token``   – print a valid access token (refreshing if needed)
* ``refresh`` – force a refresh / re-request
* ``logout``  – remove a stored token

Configuration comes from ``SPOTIFY_*`` environment variables, see
:meth:`SpotifyAuthConfig.from_env`.  Tokens are **never** logged; ``token``
prints one to stdout on explicit request only.

Example
-------
    spotify-auth login --no-browser
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from spotify_client.auth.errors import AuthConfigError, AuthError
from spotify_client.auth.manager import AuthenticatorManager
from spotify_client.auth.status import token_status
from spotify_client.config import FLOW_NAMES, SpotifyAuthConfig
from spotify_client.utils.logging import setup_logging

logger = logging.getLogger("spotify-client.cli")


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #
def _cmd_login(manager: AuthenticatorManager, args: argparse.Namespace) -> int:
    authenticator = manager.driver("authorization_code")
    record = authenticator.login(  # type: ignore[attr-defined]
        args.scope or None,
        open_browser=not args.no_browser,
        timeout=args.timeout,
        on_authorization_url=lambda url: print(
            f"Open this URL to authorize the application:\n{url}", file=sys.stderr
        ),
    )
    print(f"Authorization successful (scope: {record.scope or '-'})")
    return 0


def _cmd_status(manager: AuthenticatorManager, args: argparse.Namespace) -> int:
    config = manager.config
    print(f"Client ID:     {'configured' if config.client_id else 'missing'}")
    print(f"Client secret: {'configured' if config.client_secret else 'missing'}")
    print(f"Auth flow:     {config.default_flow}")
    print(f"Token storage: {config.token_storage_path}")
    for status in token_status(manager.store, clock=manager.clock):
        expires = status.expires_at_iso or "-"
        print(f"{status.key:<26} {status.label:<15} expires {expires}")
    return 0 if config.is_auth_configured() else 1


def _cmd_token(manager: AuthenticatorManager, args: argparse.Namespace) -> int:
    print(manager.get_access_token(args.flow))
    return 0


def _cmd_refresh(manager: AuthenticatorManager, args: argparse.Namespace) -> int:
    record = manager.driver(args.flow).refresh()
    print(f"Token refreshed; expires in {record.expires_in}s")
    return 0


def _cmd_logout(manager: AuthenticatorManager, args: argparse.Namespace) -> int:
    manager.driver(args.flow).forget()
    print(f"Removed stored {args.flow or manager.default_driver} token")
    return 0


# --------------------------------------------------------------------------- #
# Entry point
# --------------------------------------------------------------------------- #
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotify-auth", description="Manage Spotify OAuth tokens.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase log verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="run the interactive authorization-code flow")
    login.add_argument("--scope", action="append", help="scope to request (repeatable)")
    login.add_argument("--no-browser", action="store_true", help="only print the authorization URL")
    login.add_argument("--timeout", type=float, default=None, help="seconds to wait for the callback")
    login.set_defaults(handler=_cmd_login)

    status = sub.add_parser("status", help="show configuration and stored tokens")
    status.set_defaults(handler=_cmd_status)

    for name, handler, help_text in (
        ("token", _cmd_token, "print a valid access token"),
        ("refresh", _cmd_refresh, "force a token refresh"),
        ("logout", _cmd_logout, "remove a stored token"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--flow", choices=FLOW_NAMES, default=None)
        cmd.set_defaults(handler=handler)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.WARNING - 10 * min(args.verbose, 2))
    try:
        manager = AuthenticatorManager(SpotifyAuthConfig.from_env())
        return args.handler(manager, args)
    except (AuthError, AuthConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        logger.debug("Command %s failed", args.command, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
