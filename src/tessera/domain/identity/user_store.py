"""User identity store.

``UserStore`` turns identity operations (create/update/delete a user;
attach/detach claims, logins and tokens; look users up by id, name, email,
login or claim) into reads and writes on an ``IdentityRepositoryPort``.

Flush policy:
    With ``auto_flush`` on (the default), every mutating operation ends by
    committing the unit of work and clearing tracked state, so the next read
    goes to the backing engine. With it off, writes accumulate until the
    caller awaits ``flush()``; ``close()`` discards whatever was not flushed.

Failure policy:
    - Missing required arguments raise ``InvalidArgumentError`` before any
      I/O and leave the unit of work untouched.
    - Updating an unknown user returns a failed ``IdentityResult``.
    - Any other exception (including ``asyncio.CancelledError``) escaping a
      mutating operation rolls the unit of work back and propagates
      unchanged. Failed lookups propagate and leave pending writes alone.
    - Every operation on a closed store raises ``StoreDisposedError``.

A store is single-in-flight: concurrent callers each open their own store.

Usage:
    async with open_user_store() as store:
        await store.create_user(User(user_name="alice", normalized_user_name="ALICE"))
        alice = await store.find_by_name("ALICE")
"""

from __future__ import annotations

from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar, cast

from tessera.domain.identity.entities import UserClaim, UserLogin, UserToken
from tessera.domain.identity.settings import get_identity_store_settings
from tessera.foundation.domain.exceptions import InvalidArgumentError, StoreDisposedError
from tessera.foundation.domain.identity_values import IdentityError, IdentityResult
from tessera.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from tessera.domain.identity.entities import User
    from tessera.domain.identity.ports import IdentityRepositoryPort
    from tessera.domain.identity.settings import IdentityStoreSettings
    from tessera.foundation.domain.identity_values import Claim, UserLoginInfo

logger = get_logger(__name__)

F = TypeVar("F", bound="Callable[..., Any]")

#: Login provider under which the store keeps its own tokens.
INTERNAL_LOGIN_PROVIDER = "[TesseraUserStore]"
AUTHENTICATOR_KEY_TOKEN_NAME = "AuthenticatorKey"
RECOVERY_CODE_TOKEN_NAME = "RecoveryCodes"
RECOVERY_CODE_SEPARATOR = ";"

USER_NOT_EXIST = "UserNotExist"


def _require(value: Any, argument: str) -> None:
    if value is None:
        raise InvalidArgumentError(argument)


def _operation(func: F) -> F:
    """Run a mutating store operation behind the disposal guard.

    Argument errors pass straight through. Anything else escaping the
    operation discards the pending unit of work before it propagates.
    """

    @wraps(func)
    async def wrapper(self: UserStore, *args: Any, **kwargs: Any) -> Any:
        self._ensure_open(func.__name__)
        try:
            return await func(self, *args, **kwargs)
        except InvalidArgumentError:
            raise
        except BaseException:
            await self._discard_changes(func.__name__)
            raise

    return cast("F", wrapper)


def _query(func: F) -> F:
    """Run a read-only store operation behind the disposal guard.

    Failures propagate without touching the unit of work, so pending
    batched writes survive a failed lookup.
    """

    @wraps(func)
    async def wrapper(self: UserStore, *args: Any, **kwargs: Any) -> Any:
        self._ensure_open(func.__name__)
        return await func(self, *args, **kwargs)

    return cast("F", wrapper)


class UserStore:
    """Unit-of-work scoped CRUD and queries over users, claims, logins and tokens.

    Args:
        repository: Backing repository; the store owns it and closes it in ``close``.
        settings: Flush policy. Defaults to settings loaded from the environment.
    """

    def __init__(
        self,
        repository: IdentityRepositoryPort,
        settings: IdentityStoreSettings | None = None,
    ) -> None:
        _require(repository, "repository")
        self._repository = repository
        self._settings = settings if settings is not None else get_identity_store_settings()
        self._closed = False

    @property
    def auto_flush(self) -> bool:
        """Whether mutating operations commit and clear on completion."""
        return self._settings.auto_flush

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Lifecycle --

    async def __aenter__(self) -> UserStore:
        self._ensure_open("__aenter__")
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the unit of work, discarding unflushed writes. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self._repository.close()
        logger.debug("user_store_closed")

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise StoreDisposedError(type(self).__name__, operation=operation)

    async def _discard_changes(self, operation: str) -> None:
        try:
            await self._repository.rollback()
        except Exception:
            logger.warning("unit_of_work_rollback_failed", operation=operation, exc_info=True)
        else:
            logger.info("unit_of_work_rolled_back", operation=operation)

    async def _flush_changes(self) -> None:
        if self._settings.auto_flush:
            await self._repository.flush()
            self._repository.clear()
            logger.debug("unit_of_work_flushed")

    @_operation
    async def flush(self) -> None:
        """Commit pending writes and clear tracked state, whatever ``auto_flush`` says."""
        await self._repository.flush()
        self._repository.clear()
        logger.debug("unit_of_work_flushed", explicit=True)

    # -- Users --

    @_operation
    async def create_user(self, user: User) -> IdentityResult:
        _require(user, "user")
        await self._repository.save_user(user)
        await self._flush_changes()
        logger.info("user_created", user_id=user.id)
        return IdentityResult.success()

    @_operation
    async def update_user(self, user: User) -> IdentityResult:
        """Overwrite the persisted user with ``user``'s current state.

        Returns:
            A failed result with code ``UserNotExist`` when no user has
            ``user.id``; nothing is written in that case.
        """
        _require(user, "user")
        if not await self._repository.user_exists(user.id):
            logger.info("user_update_rejected", user_id=user.id, error_code=USER_NOT_EXIST)
            return IdentityResult.failed(
                IdentityError(
                    code=USER_NOT_EXIST,
                    description=f"User with id {user.id} does not exist.",
                )
            )
        await self._repository.merge_user(user)
        await self._flush_changes()
        logger.info("user_updated", user_id=user.id)
        return IdentityResult.success()

    @_operation
    async def delete_user(self, user: User) -> IdentityResult:
        """Delete the user; the backing engine cascades to claims, logins and tokens."""
        _require(user, "user")
        await self._repository.delete_user(user.id)
        await self._flush_changes()
        logger.info("user_deleted", user_id=user.id)
        return IdentityResult.success()

    @_query
    async def find_by_id(self, user_id: str) -> User | None:
        _require(user_id, "user_id")
        return await self._repository.get_user(user_id)

    @_query
    async def find_by_name(self, normalized_user_name: str) -> User | None:
        _require(normalized_user_name, "normalized_user_name")
        return await self._repository.find_user_by_normalized_name(normalized_user_name)

    @_query
    async def find_by_email(self, normalized_email: str) -> User | None:
        _require(normalized_email, "normalized_email")
        return await self._repository.find_user_by_normalized_email(normalized_email)

    @_query
    async def list_users(self, offset: int = 0, limit: int | None = None) -> list[User]:
        """Page through all users ordered by id."""
        return await self._repository.list_users(offset=offset, limit=limit)

    # -- Claims --

    @_query
    async def get_claims(self, user: User) -> list[Claim]:
        _require(user, "user")
        rows = await self._repository.find_claims_by_user(user.id)
        return [row.to_claim() for row in rows]

    @_operation
    async def add_claims(self, user: User, claims: Iterable[Claim]) -> None:
        """Attach claims to the user with a single flush after the batch."""
        _require(user, "user")
        _require(claims, "claims")
        count = 0
        for claim in claims:
            await self._repository.save_claim(UserClaim.from_claim(user.id, claim))
            count += 1
        await self._flush_changes()
        logger.info("claims_added", user_id=user.id, count=count)

    @_operation
    async def replace_claim(self, user: User, claim: Claim, new_claim: Claim) -> None:
        """Rewrite every row of the user matching ``claim`` to ``new_claim``.

        No matching row is not an error; nothing changes.
        """
        _require(user, "user")
        _require(claim, "claim")
        _require(new_claim, "new_claim")
        matched = await self._repository.find_claims_by_user_and_pair(
            user.id, claim.type, claim.value
        )
        for row in matched:
            row.claim_type = new_claim.type
            row.claim_value = new_claim.value
            await self._repository.update_claim(row)
        await self._flush_changes()
        logger.info("claim_replaced", user_id=user.id, count=len(matched))

    @_operation
    async def remove_claims(self, user: User, claims: Iterable[Claim]) -> None:
        """Delete every row of the user matching any of ``claims``; one flush."""
        _require(user, "user")
        _require(claims, "claims")
        count = 0
        for claim in claims:
            matched = await self._repository.find_claims_by_user_and_pair(
                user.id, claim.type, claim.value
            )
            for row in matched:
                await self._repository.delete_claim(cast("int", row.id))
            count += len(matched)
        await self._flush_changes()
        logger.info("claims_removed", user_id=user.id, count=count)

    @_query
    async def get_users_for_claim(self, claim: Claim) -> list[User]:
        _require(claim, "claim")
        return await self._repository.find_users_by_claim_pair(claim.type, claim.value)

    # -- Logins --

    @_operation
    async def add_login(self, user: User, login: UserLoginInfo) -> None:
        _require(user, "user")
        _require(login, "login")
        await self._repository.save_login(UserLogin.from_login_info(user.id, login))
        await self._flush_changes()
        logger.info("login_added", user_id=user.id, login_provider=login.login_provider)

    @_operation
    async def remove_login(self, user: User, login_provider: str, provider_key: str) -> None:
        _require(user, "user")
        login = await self._repository.find_login_for_user(user.id, login_provider, provider_key)
        if login is not None:
            await self._repository.delete_login(login.login_provider, login.provider_key)
            logger.info("login_removed", user_id=user.id, login_provider=login_provider)
        await self._flush_changes()

    @_query
    async def get_logins(self, user: User) -> list[UserLoginInfo]:
        _require(user, "user")
        rows = await self._repository.find_logins_by_user(user.id)
        return [row.to_login_info() for row in rows]

    @_query
    async def find_login(
        self,
        login_provider: str,
        provider_key: str,
        user_id: str | None = None,
    ) -> UserLogin | None:
        """Find an external login, optionally only among ``user_id``'s logins."""
        if user_id is None:
            return await self._repository.find_login(login_provider, provider_key)
        return await self._repository.find_login_for_user(user_id, login_provider, provider_key)

    @_query
    async def find_by_login(self, login_provider: str, provider_key: str) -> User | None:
        """Resolve the user an external login belongs to."""
        login = await self._repository.find_login(login_provider, provider_key)
        if login is None:
            return None
        return await self._repository.get_user(login.user_id)

    # -- Tokens --

    @_query
    async def find_token(self, user: User, login_provider: str, name: str) -> UserToken | None:
        _require(user, "user")
        return await self._repository.find_token(user.id, login_provider, name)

    @_operation
    async def add_user_token(self, token: UserToken) -> None:
        _require(token, "token")
        await self._repository.save_token(token)
        await self._flush_changes()
        logger.info("token_added", user_id=token.user_id, token_name=token.name)

    @_operation
    async def remove_user_token(self, token: UserToken) -> None:
        _require(token, "token")
        await self._repository.delete_token(token.user_id, token.login_provider, token.name)
        await self._flush_changes()
        logger.info("token_removed", user_id=token.user_id, token_name=token.name)

    @_operation
    async def set_token(
        self, user: User, login_provider: str, name: str, value: str | None
    ) -> None:
        """Store ``value`` under (user, provider, name), replacing any previous value."""
        _require(user, "user")
        await self._set_token_value(user, login_provider, name, value)

    @_query
    async def get_token(self, user: User, login_provider: str, name: str) -> str | None:
        _require(user, "user")
        return await self._get_token_value(user, login_provider, name)

    @_operation
    async def remove_token(self, user: User, login_provider: str, name: str) -> None:
        _require(user, "user")
        token = await self._repository.find_token(user.id, login_provider, name)
        if token is not None:
            await self._repository.delete_token(user.id, login_provider, name)
            logger.info("token_removed", user_id=user.id, token_name=name)
        await self._flush_changes()

    async def _set_token_value(
        self, user: User, login_provider: str, name: str, value: str | None
    ) -> None:
        token = await self._repository.find_token(user.id, login_provider, name)
        if token is None:
            token = UserToken(user_id=user.id, login_provider=login_provider, name=name, value=value)
            await self._repository.save_token(token)
        else:
            token.value = value
            await self._repository.update_token(token)
        await self._flush_changes()
        logger.info("token_set", user_id=user.id, token_name=name)

    async def _get_token_value(self, user: User, login_provider: str, name: str) -> str | None:
        token = await self._repository.find_token(user.id, login_provider, name)
        return None if token is None else token.value

    # -- Authenticator key and recovery codes --

    @_operation
    async def set_authenticator_key(self, user: User, key: str) -> None:
        _require(user, "user")
        await self._set_token_value(
            user, INTERNAL_LOGIN_PROVIDER, AUTHENTICATOR_KEY_TOKEN_NAME, key
        )

    @_query
    async def get_authenticator_key(self, user: User) -> str | None:
        _require(user, "user")
        return await self._get_token_value(
            user, INTERNAL_LOGIN_PROVIDER, AUTHENTICATOR_KEY_TOKEN_NAME
        )

    @_operation
    async def replace_codes(self, user: User, recovery_codes: Iterable[str]) -> None:
        """Replace the user's recovery codes with ``recovery_codes``."""
        _require(user, "user")
        _require(recovery_codes, "recovery_codes")
        merged = RECOVERY_CODE_SEPARATOR.join(recovery_codes)
        await self._set_token_value(user, INTERNAL_LOGIN_PROVIDER, RECOVERY_CODE_TOKEN_NAME, merged)

    @_operation
    async def redeem_code(self, user: User, code: str) -> bool:
        """Consume a recovery code.

        Returns:
            True if ``code`` was one of the user's codes (it is now removed),
            False otherwise.
        """
        _require(user, "user")
        _require(code, "code")
        codes = await self._recovery_codes(user)
        if code not in codes:
            return False
        codes.remove(code)
        await self._set_token_value(
            user,
            INTERNAL_LOGIN_PROVIDER,
            RECOVERY_CODE_TOKEN_NAME,
            RECOVERY_CODE_SEPARATOR.join(codes),
        )
        return True

    @_query
    async def count_codes(self, user: User) -> int:
        _require(user, "user")
        return len(await self._recovery_codes(user))

    async def _recovery_codes(self, user: User) -> list[str]:
        merged = await self._get_token_value(user, INTERNAL_LOGIN_PROVIDER, RECOVERY_CODE_TOKEN_NAME)
        if not merged:
            return []
        return [code for code in merged.split(RECOVERY_CODE_SEPARATOR) if code]
