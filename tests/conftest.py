"""Pytest configuration and shared fixtures."""

import sys

import pytest

from garden_app.logging.config import configure_logging
from garden_app.registry import EventLog, PlotRegistry

MANAGER = "0x00000000000000000000000000000000000000aa"
ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b2"
CAROL = "0x00000000000000000000000000000000000000c3"


@pytest.fixture(autouse=True)
def quiet_logging():
    """Send warnings and above to stderr so stdout only carries delivered events."""
    configure_logging(level="WARNING", stream=sys.stderr)


@pytest.fixture
def manager() -> str:
    """Identity that deploys the registry."""
    return MANAGER


@pytest.fixture
def alice() -> str:
    return ALICE


@pytest.fixture
def bob() -> str:
    return BOB


@pytest.fixture
def carol() -> str:
    return CAROL


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def registry(event_log: EventLog) -> PlotRegistry:
    """Registry with 10 plots and a cap of 2, matching the reference scenarios."""
    return PlotRegistry(10, 2, MANAGER, event_log=event_log)


@pytest.fixture
def db_path(tmp_path) -> str:
    """Path for a throwaway SQLite event store."""
    return str(tmp_path / "test_events.db")


@pytest.fixture
def config_dir(tmp_path):
    """Empty config directory so tests never pick up the repository's garden.yaml."""
    path = tmp_path / "config"
    path.mkdir()
    return path
