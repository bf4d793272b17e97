"""SQLAlchemy implementation of the identity repository port.

Every statement runs on one ``AsyncSession`` and therefore inside one
transaction: writes are visible to later reads through this repository and
are discarded by ``rollback`` or ``close`` unless ``flush`` committed them.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, exists, insert, select, update

from tessera.domain.identity.entities import User, UserClaim, UserLogin, UserToken
from tessera.domain.identity.schema import (
    identity_user_claims,
    identity_user_logins,
    identity_user_tokens,
    identity_users,
)

if TYPE_CHECKING:
    from sqlalchemy import Row, Select
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _to_user(row: Row[Any]) -> User:
    return User(**row._mapping)


def _to_claim(row: Row[Any]) -> UserClaim:
    return UserClaim(**row._mapping)


def _to_login(row: Row[Any]) -> UserLogin:
    return UserLogin(**row._mapping)


def _to_token(row: Row[Any]) -> UserToken:
    return UserToken(**row._mapping)


class SqlAlchemyIdentityRepository:
    """Identity persistence over a single async SQLAlchemy session.

    Args:
        session: The session bounding this repository's unit of work. The
            repository closes it in ``close``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _first_user(self, statement: Select[Any]) -> User | None:
        result = await self._session.execute(statement.limit(1))
        row = result.first()
        return None if row is None else _to_user(row)

    # -- Users --

    async def save_user(self, user: User) -> None:
        await self._session.execute(insert(identity_users).values(**asdict(user)))

    async def merge_user(self, user: User) -> None:
        values = asdict(user)
        user_id = values.pop("id")
        await self._session.execute(
            update(identity_users).where(identity_users.c.id == user_id).values(**values)
        )

    async def delete_user(self, user_id: str) -> None:
        await self._session.execute(delete(identity_users).where(identity_users.c.id == user_id))

    async def get_user(self, user_id: str) -> User | None:
        return await self._first_user(select(identity_users).where(identity_users.c.id == user_id))

    async def user_exists(self, user_id: str) -> bool:
        statement = select(exists().where(identity_users.c.id == user_id))
        return bool(await self._session.scalar(statement))

    async def find_user_by_normalized_name(self, normalized_user_name: str) -> User | None:
        return await self._first_user(
            select(identity_users).where(
                identity_users.c.normalized_user_name == normalized_user_name
            )
        )

    async def find_user_by_normalized_email(self, normalized_email: str) -> User | None:
        return await self._first_user(
            select(identity_users).where(identity_users.c.normalized_email == normalized_email)
        )

    async def list_users(self, offset: int = 0, limit: int | None = None) -> list[User]:
        statement = select(identity_users).order_by(identity_users.c.id).offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        result = await self._session.execute(statement)
        return [_to_user(row) for row in result]

    # -- Claims --

    async def save_claim(self, claim: UserClaim) -> int:
        values = asdict(claim)
        del values["id"]
        result = await self._session.execute(insert(identity_user_claims).values(**values))
        claim_id: int = result.inserted_primary_key[0]
        claim.id = claim_id
        return claim_id

    async def update_claim(self, claim: UserClaim) -> None:
        await self._session.execute(
            update(identity_user_claims)
            .where(identity_user_claims.c.id == claim.id)
            .values(
                user_id=claim.user_id,
                claim_type=claim.claim_type,
                claim_value=claim.claim_value,
            )
        )

    async def delete_claim(self, claim_id: int) -> None:
        await self._session.execute(
            delete(identity_user_claims).where(identity_user_claims.c.id == claim_id)
        )

    async def find_claims_by_user(self, user_id: str) -> list[UserClaim]:
        result = await self._session.execute(
            select(identity_user_claims)
            .where(identity_user_claims.c.user_id == user_id)
            .order_by(identity_user_claims.c.id)
        )
        return [_to_claim(row) for row in result]

    async def find_claims_by_user_and_pair(
        self, user_id: str, claim_type: str, claim_value: str
    ) -> list[UserClaim]:
        result = await self._session.execute(
            select(identity_user_claims)
            .where(
                identity_user_claims.c.user_id == user_id,
                identity_user_claims.c.claim_type == claim_type,
                identity_user_claims.c.claim_value == claim_value,
            )
            .order_by(identity_user_claims.c.id)
        )
        return [_to_claim(row) for row in result]

    async def find_users_by_claim_pair(self, claim_type: str, claim_value: str) -> list[User]:
        holders = select(identity_user_claims.c.user_id).where(
            identity_user_claims.c.claim_type == claim_type,
            identity_user_claims.c.claim_value == claim_value,
        )
        result = await self._session.execute(
            select(identity_users)
            .where(identity_users.c.id.in_(holders))
            .order_by(identity_users.c.id)
        )
        return [_to_user(row) for row in result]

    # -- Logins --

    async def save_login(self, login: UserLogin) -> None:
        await self._session.execute(insert(identity_user_logins).values(**asdict(login)))

    async def delete_login(self, login_provider: str, provider_key: str) -> None:
        await self._session.execute(
            delete(identity_user_logins).where(
                identity_user_logins.c.login_provider == login_provider,
                identity_user_logins.c.provider_key == provider_key,
            )
        )

    async def find_logins_by_user(self, user_id: str) -> list[UserLogin]:
        result = await self._session.execute(
            select(identity_user_logins)
            .where(identity_user_logins.c.user_id == user_id)
            .order_by(identity_user_logins.c.login_provider, identity_user_logins.c.provider_key)
        )
        return [_to_login(row) for row in result]

    async def find_login_for_user(
        self, user_id: str, login_provider: str, provider_key: str
    ) -> UserLogin | None:
        result = await self._session.execute(
            select(identity_user_logins).where(
                identity_user_logins.c.user_id == user_id,
                identity_user_logins.c.login_provider == login_provider,
                identity_user_logins.c.provider_key == provider_key,
            )
        )
        row = result.first()
        return None if row is None else _to_login(row)

    async def find_login(self, login_provider: str, provider_key: str) -> UserLogin | None:
        result = await self._session.execute(
            select(identity_user_logins).where(
                identity_user_logins.c.login_provider == login_provider,
                identity_user_logins.c.provider_key == provider_key,
            )
        )
        row = result.first()
        return None if row is None else _to_login(row)

    # -- Tokens --

    async def save_token(self, token: UserToken) -> None:
        await self._session.execute(insert(identity_user_tokens).values(**asdict(token)))

    async def update_token(self, token: UserToken) -> None:
        await self._session.execute(
            update(identity_user_tokens)
            .where(
                identity_user_tokens.c.user_id == token.user_id,
                identity_user_tokens.c.login_provider == token.login_provider,
                identity_user_tokens.c.name == token.name,
            )
            .values(value=token.value)
        )

    async def delete_token(self, user_id: str, login_provider: str, name: str) -> None:
        await self._session.execute(
            delete(identity_user_tokens).where(
                identity_user_tokens.c.user_id == user_id,
                identity_user_tokens.c.login_provider == login_provider,
                identity_user_tokens.c.name == name,
            )
        )

    async def find_token(self, user_id: str, login_provider: str, name: str) -> UserToken | None:
        result = await self._session.execute(
            select(identity_user_tokens).where(
                identity_user_tokens.c.user_id == user_id,
                identity_user_tokens.c.login_provider == login_provider,
                identity_user_tokens.c.name == name,
            )
        )
        row = result.first()
        return None if row is None else _to_token(row)

    # -- Unit of work --

    async def flush(self) -> None:
        await self._session.commit()
        logger.debug("identity_repository_committed")

    def clear(self) -> None:
        self._session.expunge_all()

    async def rollback(self) -> None:
        await self._session.rollback()
        logger.debug("identity_repository_rolled_back")

    async def close(self) -> None:
        await self._session.close()
