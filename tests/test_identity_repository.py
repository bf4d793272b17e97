"""Tests for SqlAlchemyIdentityRepository and its column types."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from tessera.domain.identity.entities import UserClaim, UserLogin, UserToken
from tessera.domain.identity.infrastructure.identity_repository import (
    SqlAlchemyIdentityRepository,
)
from tessera.domain.identity.ports import IdentityRepositoryPort
from tessera.domain.identity.schema import UtcDateTime

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tessera.domain.identity.entities import User
    from tessera.infra.persistence.database import DatabaseManager


@pytest_asyncio.fixture()
async def repository(database: DatabaseManager) -> AsyncIterator[SqlAlchemyIdentityRepository]:
    repo = SqlAlchemyIdentityRepository(database.get_session_factory()())
    yield repo
    await repo.close()


class TestRepositoryPort:
    @pytest.mark.unit
    def test_satisfies_port(self) -> None:
        repo = SqlAlchemyIdentityRepository(MagicMock())
        assert isinstance(repo, IdentityRepositoryPort)


class TestUsers:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_exists_and_merge(
        self, repository: SqlAlchemyIdentityRepository, alice: User
    ) -> None:
        assert await repository.user_exists("u1") is False
        await repository.save_user(alice)
        assert await repository.user_exists("u1") is True

        alice.two_factor_enabled = True
        await repository.merge_user(alice)

        stored = await repository.get_user("u1")
        assert stored is not None
        assert stored.two_factor_enabled is True

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_users_pages(
        self, repository: SqlAlchemyIdentityRepository, alice: User, bob: User
    ) -> None:
        await repository.save_user(bob)
        await repository.save_user(alice)

        assert [u.id for u in await repository.list_users()] == ["u1", "u2"]
        assert [u.id for u in await repository.list_users(limit=1)] == ["u1"]
        assert await repository.list_users(offset=2) == []


class TestClaims:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_save_assigns_ids(
        self, repository: SqlAlchemyIdentityRepository, alice: User
    ) -> None:
        await repository.save_user(alice)
        first = UserClaim("u1", "role", "admin")
        second = UserClaim("u1", "role", "admin")

        first_id = await repository.save_claim(first)
        second_id = await repository.save_claim(second)

        assert first.id == first_id
        assert second.id == second_id
        assert first_id != second_id
        pair = await repository.find_claims_by_user_and_pair("u1", "role", "admin")
        assert [row.id for row in pair] == [first_id, second_id]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_users_by_claim_pair_are_distinct(
        self, repository: SqlAlchemyIdentityRepository, alice: User
    ) -> None:
        await repository.save_user(alice)
        await repository.save_claim(UserClaim("u1", "role", "admin"))
        await repository.save_claim(UserClaim("u1", "role", "admin"))

        assert await repository.find_users_by_claim_pair("role", "admin") == [alice]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_and_delete(
        self, repository: SqlAlchemyIdentityRepository, alice: User
    ) -> None:
        await repository.save_user(alice)
        claim = UserClaim("u1", "role", "admin")
        claim_id = await repository.save_claim(claim)

        claim.claim_value = "owner"
        await repository.update_claim(claim)
        assert await repository.find_claims_by_user("u1") == [
            UserClaim("u1", "role", "owner", id=claim_id)
        ]

        await repository.delete_claim(claim_id)
        assert await repository.find_claims_by_user("u1") == []


class TestLoginsAndTokens:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_login_lookup_scoped_to_user(
        self, repository: SqlAlchemyIdentityRepository, alice: User, bob: User
    ) -> None:
        await repository.save_user(alice)
        await repository.save_user(bob)
        login = UserLogin("github", "gh-1", "u1")
        await repository.save_login(login)

        assert await repository.find_login("github", "gh-1") == login
        assert await repository.find_login_for_user("u1", "github", "gh-1") == login
        assert await repository.find_login_for_user("u2", "github", "gh-1") is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_token_update(
        self, repository: SqlAlchemyIdentityRepository, alice: User
    ) -> None:
        await repository.save_user(alice)
        token = UserToken("u1", "github", "access_token", "v1")
        await repository.save_token(token)

        token.value = "v2"
        await repository.update_token(token)

        stored = await repository.find_token("u1", "github", "access_token")
        assert stored is not None
        assert stored.value == "v2"


class TestUnitOfWork:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rollback_discards_and_flush_commits(
        self,
        database: DatabaseManager,
        repository: SqlAlchemyIdentityRepository,
        alice: User,
        bob: User,
    ) -> None:
        await repository.save_user(alice)
        await repository.rollback()
        assert await repository.get_user("u1") is None

        await repository.save_user(bob)
        await repository.flush()
        repository.clear()

        other = SqlAlchemyIdentityRepository(database.get_session_factory()())
        try:
            assert await other.get_user("u2") == bob
        finally:
            await other.close()


class TestUtcDateTime:
    @pytest.mark.unit
    def test_naive_value_taken_as_utc(self) -> None:
        bound = UtcDateTime().process_bind_param(datetime(2030, 1, 1), None)
        assert bound == datetime(2030, 1, 1, tzinfo=UTC)

    @pytest.mark.unit
    def test_result_gets_utc_attached(self) -> None:
        loaded = UtcDateTime().process_result_value(datetime(2030, 1, 1), None)
        assert loaded is not None
        assert loaded.tzinfo is UTC

    @pytest.mark.unit
    def test_none_passes_through(self) -> None:
        column_type = UtcDateTime()
        assert column_type.process_bind_param(None, None) is None
        assert column_type.process_result_value(None, None) is None
