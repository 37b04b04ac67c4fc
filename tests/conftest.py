"""
Pytest fixtures and test configuration for pamsync tests.
"""

import pytest

from pamsync.storage import SQLiteEntityStore
from pamsync.sync import SyncOrchestrator, SyncState
from pamsync.testing import FixedClock, InMemoryRemoteStore, StaticAuth

USER_ID = "user-1"


@pytest.fixture
def store(tmp_path):
    """SQLite entity store in a temp directory."""
    s = SQLiteEntityStore(tmp_path / "pamsync.db")
    yield s
    s.close()


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def auth():
    return StaticAuth(current_user_id=USER_ID)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def state():
    return SyncState()


@pytest.fixture
def orchestrator(store, remote, auth, state, clock):
    return SyncOrchestrator(store, remote, auth, state=state, clock=clock)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep settings and credentials away from the real home directory."""
    from pamsync.config import get_settings

    for var in ("PAMSYNC_BACKEND_URL", "PAMSYNC_AUTH_TOKEN", "PAMSYNC_USER_ID", "PAMSYNC_DB_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("PAMSYNC_DATA_DIR", str(tmp_path / "home"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
