"""Per-scope wiring of a UserStore onto a database session.

Each scope gets its own session, repository and store; the engine and
connection pool behind them are shared through the ``DatabaseManager``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from tessera.domain.identity.infrastructure.identity_repository import (
    SqlAlchemyIdentityRepository,
)
from tessera.domain.identity.user_store import UserStore
from tessera.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tessera.domain.identity.settings import IdentityStoreSettings
    from tessera.infra.persistence.database import DatabaseManager


@asynccontextmanager
async def open_user_store(
    manager: DatabaseManager | None = None,
    settings: IdentityStoreSettings | None = None,
) -> AsyncIterator[UserStore]:
    """Open a UserStore bound to a fresh session and close it on exit.

    Args:
        manager: Database manager to draw the session from. Defaults to the
            environment-configured singleton.
        settings: Flush policy for the store. Defaults to environment settings.

    Yields:
        An open UserStore. Unflushed writes are discarded when the scope exits.

    Example:
        >>> async with open_user_store(settings=IdentityStoreSettings(auto_flush=False)) as store:
        ...     await store.create_user(user)
        ...     await store.add_claims(user, [Claim("role", "admin")])
        ...     await store.flush()
    """
    if manager is None:
        manager = get_database_manager()
    session = manager.get_session_factory()()
    async with UserStore(SqlAlchemyIdentityRepository(session), settings) as store:
        yield store
