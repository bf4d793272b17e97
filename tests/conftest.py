"""Shared fixtures for identity store tests."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import create_autospec

import pytest
import pytest_asyncio

from tessera.domain.identity.entities import User
from tessera.domain.identity.infrastructure.identity_repository import (
    SqlAlchemyIdentityRepository,
)
from tessera.domain.identity.infrastructure.store_scope import open_user_store
from tessera.domain.identity.schema import ensure_schema
from tessera.domain.identity.settings import IdentityStoreSettings
from tessera.domain.identity.user_store import UserStore
from tessera.infra.persistence.database import DatabaseManager, DatabaseSettings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path
    from unittest.mock import MagicMock


@pytest.fixture()
def alice() -> User:
    """A user with normalized name and email set."""
    return User(
        id="u1",
        user_name="alice",
        normalized_user_name="ALICE",
        email="alice@example.com",
        normalized_email="ALICE@EXAMPLE.COM",
        password_hash="AQAAAAEAACcQAAAAE-hash",
        security_stamp="stamp-alice",
    )


@pytest.fixture()
def bob() -> User:
    return User(
        id="u2",
        user_name="bob",
        normalized_user_name="BOB",
        email="bob@example.com",
        normalized_email="BOB@EXAMPLE.COM",
    )


@pytest.fixture()
def mock_repository() -> MagicMock:
    """Autospecced repository: async methods are AsyncMocks, ``clear`` is sync."""
    return create_autospec(SqlAlchemyIdentityRepository, instance=True)


@pytest.fixture()
def mock_store(mock_repository: MagicMock) -> UserStore:
    return UserStore(mock_repository, IdentityStoreSettings(auto_flush=True))


@pytest_asyncio.fixture()
async def database(tmp_path: Path) -> AsyncIterator[DatabaseManager]:
    """File-backed SQLite database with the identity schema created."""
    settings = DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    manager = DatabaseManager(settings)
    await ensure_schema(manager.get_engine())
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture()
async def store(database: DatabaseManager) -> AsyncIterator[UserStore]:
    """Auto-flushing store on the test database."""
    async with open_user_store(database, IdentityStoreSettings(auto_flush=True)) as s:
        yield s
