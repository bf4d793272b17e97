"""Table definitions for identity records.

Child tables reference ``identity_users`` with ``ON DELETE CASCADE`` so the
backing engine removes claims, logins and tokens together with their user.
Claim ids are drawn from ``identity_claim_id_seq`` on engines with sequence
support and from autoincrement elsewhere.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Sequence,
    String,
    Table,
    TypeDecorator,
)

from tessera.domain.identity.entities import MAX_USER_ID_LENGTH
from tessera.foundation.domain.identity_values import MAX_CLAIM_LENGTH

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

class UtcDateTime(TypeDecorator[datetime]):
    """Timezone-aware datetime stored as UTC and read back with UTC attached.

    Naive values are taken as UTC. SQLite keeps no offset, so rows it returns
    get UTC reattached.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


metadata = MetaData()

claim_id_seq = Sequence("identity_claim_id_seq", metadata=metadata)

identity_users = Table(
    "identity_users",
    metadata,
    Column("id", String(MAX_USER_ID_LENGTH), primary_key=True),
    Column("user_name", String(256), nullable=True),
    Column("normalized_user_name", String(256), nullable=True, unique=True),
    Column("email", String(256), nullable=True),
    Column("normalized_email", String(256), nullable=True),
    Column("email_confirmed", Boolean, nullable=False, default=False),
    Column("password_hash", String(1024), nullable=True),
    Column("security_stamp", String(256), nullable=True),
    Column("concurrency_stamp", String(256), nullable=True),
    Column("phone_number", String(64), nullable=True),
    Column("phone_number_confirmed", Boolean, nullable=False, default=False),
    Column("two_factor_enabled", Boolean, nullable=False, default=False),
    Column("lockout_end", UtcDateTime(), nullable=True),
    Column("lockout_enabled", Boolean, nullable=False, default=False),
    Column("access_failed_count", Integer, nullable=False, default=0),
    Index("ix_identity_users_normalized_email", "normalized_email"),
)

identity_user_claims = Table(
    "identity_user_claims",
    metadata,
    Column("id", Integer, claim_id_seq, primary_key=True),
    Column(
        "user_id",
        String(MAX_USER_ID_LENGTH),
        ForeignKey("identity_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("claim_type", String(MAX_CLAIM_LENGTH), nullable=False),
    Column("claim_value", String(MAX_CLAIM_LENGTH), nullable=False),
    Index("ix_identity_user_claims_pair", "claim_type", "claim_value"),
)

identity_user_logins = Table(
    "identity_user_logins",
    metadata,
    Column("login_provider", String(128), primary_key=True),
    Column("provider_key", String(128), primary_key=True),
    Column("provider_display_name", String(256), nullable=True),
    Column(
        "user_id",
        String(MAX_USER_ID_LENGTH),
        ForeignKey("identity_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
)

identity_user_tokens = Table(
    "identity_user_tokens",
    metadata,
    Column(
        "user_id",
        String(MAX_USER_ID_LENGTH),
        ForeignKey("identity_users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("login_provider", String(128), primary_key=True),
    Column("name", String(128), primary_key=True),
    Column("value", String(4096), nullable=True),
)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create the identity tables if they do not exist.

    Development and test bootstrap only; production schemas are managed by
    migrations outside this package.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("identity_schema_ensured")
