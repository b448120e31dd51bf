"""
Pytest configuration and fixtures for GuildKeeper tests.
"""

import pytest

from guildkeeper.db_manager import DatabaseManager
from guildkeeper.services.reconciliation import Reconciler

from tests.fakes import FakeGuild


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "bot.db"))
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def reconciler(db):
    return Reconciler(db)


@pytest.fixture
def guild():
    return FakeGuild()
