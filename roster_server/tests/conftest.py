"""
Shared fixtures for roster server tests.
"""

import pytest
import pytest_asyncio

from ..broadcaster import PresenceBroadcaster
from ..channel import BroadcastChannel
from ..db_async import Database
from ..lifecycle import SessionLifecycleHandler
from ..registry import ConnectionRegistry


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def channel():
    return BroadcastChannel("live users")


@pytest.fixture
def broadcaster(registry, channel):
    return PresenceBroadcaster(registry, channel)


@pytest.fixture
def lifecycle(registry, channel, broadcaster):
    return SessionLifecycleHandler(registry, channel, broadcaster)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(tmp_path / "test_roster.db")
    await database.connect()
    yield database
    await database.close()
