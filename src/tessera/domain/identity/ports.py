"""Port interface for identity persistence.

This module defines the IdentityRepositoryPort protocol: the explicit,
non-lazy primitives the identity store needs from a backing engine. Each
query is a named method returning concrete DTOs; nothing deferred leaks
across the boundary.

All writes go into one unit of work. They are visible to later reads on the
same repository and become durable only when ``flush`` is awaited.

Example:
    >>> from tessera.domain.identity.ports import IdentityRepositoryPort
    >>> async def user_count(repo: IdentityRepositoryPort) -> int:
    ...     return len(await repo.list_users())
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tessera.domain.identity.entities import User, UserClaim, UserLogin, UserToken


@runtime_checkable
class IdentityRepositoryPort(Protocol):
    """Port for unit-of-work scoped identity persistence.

    The protocol is runtime_checkable to enable isinstance() verification
    in tests and dependency injection validation.
    """

    # -- Users --

    async def save_user(self, user: User) -> None: ...

    async def merge_user(self, user: User) -> None:
        """Overwrite the persisted user having ``user.id`` with ``user``'s state."""
        ...

    async def delete_user(self, user_id: str) -> None: ...

    async def get_user(self, user_id: str) -> User | None: ...

    async def user_exists(self, user_id: str) -> bool: ...

    async def find_user_by_normalized_name(self, normalized_user_name: str) -> User | None: ...

    async def find_user_by_normalized_email(self, normalized_email: str) -> User | None: ...

    async def list_users(self, offset: int = 0, limit: int | None = None) -> list[User]: ...

    # -- Claims --

    async def save_claim(self, claim: UserClaim) -> int:
        """Insert a claim row and return the backend-assigned id."""
        ...

    async def update_claim(self, claim: UserClaim) -> None: ...

    async def delete_claim(self, claim_id: int) -> None: ...

    async def find_claims_by_user(self, user_id: str) -> list[UserClaim]: ...

    async def find_claims_by_user_and_pair(
        self, user_id: str, claim_type: str, claim_value: str
    ) -> list[UserClaim]: ...

    async def find_users_by_claim_pair(self, claim_type: str, claim_value: str) -> list[User]:
        """Return each user holding the (type, value) pair once."""
        ...

    # -- Logins --

    async def save_login(self, login: UserLogin) -> None: ...

    async def delete_login(self, login_provider: str, provider_key: str) -> None: ...

    async def find_logins_by_user(self, user_id: str) -> list[UserLogin]: ...

    async def find_login_for_user(
        self, user_id: str, login_provider: str, provider_key: str
    ) -> UserLogin | None: ...

    async def find_login(self, login_provider: str, provider_key: str) -> UserLogin | None: ...

    # -- Tokens --

    async def save_token(self, token: UserToken) -> None: ...

    async def update_token(self, token: UserToken) -> None: ...

    async def delete_token(self, user_id: str, login_provider: str, name: str) -> None: ...

    async def find_token(self, user_id: str, login_provider: str, name: str) -> UserToken | None: ...

    # -- Unit of work --

    async def flush(self) -> None:
        """Commit pending writes to the backing engine."""
        ...

    def clear(self) -> None:
        """Detach everything tracked so later reads hit the engine."""
        ...

    async def rollback(self) -> None:
        """Discard pending writes."""
        ...

    async def close(self) -> None: ...
