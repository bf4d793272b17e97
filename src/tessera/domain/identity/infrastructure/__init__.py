"""Infrastructure adapters for the identity domain."""

from tessera.domain.identity.infrastructure.identity_repository import (
    SqlAlchemyIdentityRepository,
)

__all__ = ["SqlAlchemyIdentityRepository"]
