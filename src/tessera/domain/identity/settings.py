"""Identity store configuration.

The flush policy is fixed when a store is constructed; settings are frozen
so it cannot change halfway through a store's lifetime.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentityStoreSettings(BaseSettings):
    """Identity store settings from environment variables.

    Loads configuration from environment variables with ``IDENTITY_STORE_`` prefix:
    - IDENTITY_STORE_AUTO_FLUSH: Commit and clear after every mutating
      operation (default: true). Turn off to batch several store calls into
      one transaction and flush explicitly.

    Example:
        >>> IdentityStoreSettings(auto_flush=False).auto_flush
        False
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_STORE_",
        extra="ignore",
        frozen=True,
    )

    auto_flush: bool = Field(
        default=True,
        description="Commit pending writes and clear tracked state after each mutating operation",
    )


@lru_cache(maxsize=1)
def get_identity_store_settings() -> IdentityStoreSettings:
    """Get cached IdentityStoreSettings instance.

    Clear cache with ``get_identity_store_settings.cache_clear()`` for testing.
    """
    return IdentityStoreSettings()
