"""Value objects exchanged with the identity store.

Immutable, validated domain primitives. All validation occurs at construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

#: Maximum length of a persisted claim type or claim value.
MAX_CLAIM_LENGTH = 1024


@dataclass(frozen=True, slots=True)
class Claim:
    """A (type, value) statement about a user.

    Claims are matched by value: two claims with the same type and value
    are equal regardless of where they came from.

    Attributes:
        type: Claim type, e.g. ``"role"`` or a URI.
        value: Claim value.

    Raises:
        ValueError: If type or value exceeds 1024 characters.
    """

    type: str
    value: str

    def __post_init__(self) -> None:
        if len(self.type) > MAX_CLAIM_LENGTH:
            msg = f"Claim type too long: {len(self.type)} chars (max {MAX_CLAIM_LENGTH})"
            raise ValueError(msg)
        if len(self.value) > MAX_CLAIM_LENGTH:
            msg = f"Claim value too long: {len(self.value)} chars (max {MAX_CLAIM_LENGTH})"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class UserLoginInfo:
    """An external login as seen by the authentication layer.

    Attributes:
        login_provider: Provider name, e.g. ``"github"``.
        provider_key: Identifier of the user at that provider.
        provider_display_name: Optional human-friendly provider name.

    Raises:
        ValueError: If provider or key is empty.
    """

    login_provider: str
    provider_key: str
    provider_display_name: str | None = None

    def __post_init__(self) -> None:
        if not self.login_provider:
            msg = "Login provider cannot be empty"
            raise ValueError(msg)
        if not self.provider_key:
            msg = "Provider key cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class IdentityError:
    """A business-rule failure reported inside an ``IdentityResult``."""

    code: str
    description: str


@dataclass(frozen=True)
class IdentityResult:
    """Outcome of a mutating store operation.

    Failures are values, not exceptions: callers check ``succeeded``.

    Example:
        >>> result = IdentityResult.failed(IdentityError("UserNotExist", "..."))
        >>> result.succeeded
        False
    """

    succeeded: bool
    errors: tuple[IdentityError, ...] = field(default=())

    _SUCCESS: ClassVar[IdentityResult]

    @classmethod
    def success(cls) -> IdentityResult:
        """Return the shared successful result."""
        return cls._SUCCESS

    @classmethod
    def failed(cls, *errors: IdentityError) -> IdentityResult:
        """Build a failed result carrying the given errors."""
        return cls(succeeded=False, errors=tuple(errors))

    def __str__(self) -> str:
        if self.succeeded:
            return "Succeeded"
        return "Failed : " + ",".join(error.code for error in self.errors)


IdentityResult._SUCCESS = IdentityResult(succeeded=True)
