"""Tessera Infra Persistence: async engine and session factories."""

from tessera.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    dispose_engine,
    get_database_manager,
)

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "dispose_engine",
    "get_database_manager",
]
