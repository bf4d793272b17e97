"""Tessera Foundation Domain -- pure Python domain primitives.

This package provides the exception hierarchy and the value objects the
identity store exchanges with its callers.
"""

from tessera.foundation.domain.exceptions import (
    DomainError,
    InvalidArgumentError,
    StoreDisposedError,
)
from tessera.foundation.domain.identity_values import (
    MAX_CLAIM_LENGTH,
    Claim,
    IdentityError,
    IdentityResult,
    UserLoginInfo,
)

__all__ = [
    "MAX_CLAIM_LENGTH",
    "Claim",
    "DomainError",
    "IdentityError",
    "IdentityResult",
    "InvalidArgumentError",
    "StoreDisposedError",
    "UserLoginInfo",
]
