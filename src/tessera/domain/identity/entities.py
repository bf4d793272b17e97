"""Data transfer objects for persisted identity records.

Plain mutable dataclasses: no lazy navigation and no change tracking. Field
names match the column names in ``tessera.domain.identity.schema`` so rows
map onto them directly. Child records point at their user by id only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from tessera.foundation.domain.identity_values import Claim, UserLoginInfo

#: Maximum length of a user id; ``uuid4().hex`` fills it exactly.
MAX_USER_ID_LENGTH = 32


def new_user_id() -> str:
    """Generate a 32-character user id."""
    return uuid4().hex


def new_stamp() -> str:
    """Generate a random security or concurrency stamp."""
    return str(uuid4())


@dataclass
class User:
    """Data transfer object for an identity user row."""

    id: str = field(default_factory=new_user_id)
    user_name: str | None = None
    normalized_user_name: str | None = None
    email: str | None = None
    normalized_email: str | None = None
    email_confirmed: bool = False
    password_hash: str | None = field(default=None, repr=False)
    security_stamp: str | None = field(default=None, repr=False)
    concurrency_stamp: str = field(default_factory=new_stamp, repr=False)
    phone_number: str | None = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: datetime | None = None
    lockout_enabled: bool = False
    access_failed_count: int = 0


@dataclass
class UserClaim:
    """Data transfer object for an identity user claim row.

    ``id`` stays ``None`` until the backing store assigns it.
    """

    user_id: str
    claim_type: str
    claim_value: str
    id: int | None = None

    @classmethod
    def from_claim(cls, user_id: str, claim: Claim) -> UserClaim:
        return cls(user_id=user_id, claim_type=claim.type, claim_value=claim.value)

    def to_claim(self) -> Claim:
        return Claim(type=self.claim_type, value=self.claim_value)


@dataclass
class UserLogin:
    """Data transfer object for an external login bound to one user."""

    login_provider: str
    provider_key: str
    user_id: str
    provider_display_name: str | None = None

    @classmethod
    def from_login_info(cls, user_id: str, login: UserLoginInfo) -> UserLogin:
        return cls(
            login_provider=login.login_provider,
            provider_key=login.provider_key,
            provider_display_name=login.provider_display_name,
            user_id=user_id,
        )

    def to_login_info(self) -> UserLoginInfo:
        return UserLoginInfo(
            login_provider=self.login_provider,
            provider_key=self.provider_key,
            provider_display_name=self.provider_display_name,
        )


@dataclass
class UserToken:
    """Data transfer object for a per-provider token of a user."""

    user_id: str
    login_provider: str
    name: str
    value: str | None = field(default=None, repr=False)
