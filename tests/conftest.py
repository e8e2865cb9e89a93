"""Shared fixtures: deterministic clock, recording token endpoint, stores."""

from __future__ import annotations

from pathlib import Path
import pytest

from spotify_client.auth.exchange import TokenExchangeClient
from spotify_client.auth.store import FileTokenStore
from tests.helpers import FakeClock, FakeSession


def pytest_configure(config):
    """Add integration marker."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring integration with real services"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run (even inside the integration
    directory) because they stub all external calls and are safe for CI.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


# --------------------------------------------------------------------------- #
# Fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def store(tmp_path: Path) -> FileTokenStore:
    """Return a temporary FileTokenStore rooted at *tmp_path*."""
    return FileTokenStore(tmp_path / "tokens" / "spotify-tokens.json")


@pytest.fixture()
def exchange(session: FakeSession, clock: FakeClock) -> TokenExchangeClient:
    return TokenExchangeClient(
        "abc",
        "shh-secret",
        session=session,  # type: ignore[arg-type]
        timeout=30,
        clock=clock,
    )
