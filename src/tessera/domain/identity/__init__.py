"""Tessera Domain Identity: persistence of users, claims, logins and tokens."""

from tessera.domain.identity.entities import User, UserClaim, UserLogin, UserToken
from tessera.domain.identity.infrastructure.identity_repository import (
    SqlAlchemyIdentityRepository,
)
from tessera.domain.identity.infrastructure.store_scope import open_user_store
from tessera.domain.identity.ports import IdentityRepositoryPort
from tessera.domain.identity.schema import ensure_schema, metadata
from tessera.domain.identity.settings import IdentityStoreSettings
from tessera.domain.identity.user_store import UserStore

__all__ = [
    "IdentityRepositoryPort",
    "IdentityStoreSettings",
    "SqlAlchemyIdentityRepository",
    "User",
    "UserClaim",
    "UserLogin",
    "UserStore",
    "UserToken",
    "ensure_schema",
    "metadata",
    "open_user_store",
]
