"""Domain exception hierarchy for type-safe error handling.

Exceptions carry a machine-readable error code and structured context so
callers can branch on failures and log them consistently. Only caller bugs
and lifecycle violations are raised; business-rule failures such as
updating an unknown user are returned as ``IdentityResult`` values instead.

Example:
    >>> from tessera.foundation.domain.exceptions import InvalidArgumentError
    >>> raise InvalidArgumentError("user")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "DomainError",
    "InvalidArgumentError",
    "StoreDisposedError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (entity ids, argument names).

    Example:
        >>> raise DomainError("Operation failed", context={"user_id": "123"})
        DomainError: Operation failed (user_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class InvalidArgumentError(DomainError):
    """Raised when a required argument is missing.

    Always raised before the backing store is touched, so the pending unit
    of work is left as it was.

    Attributes:
        error_code: "INVALID_ARGUMENT" (class constant).
        argument: Name of the missing argument.

    Example:
        >>> raise InvalidArgumentError("claims")
        InvalidArgumentError: Argument 'claims' must not be None (argument=claims)
    """

    error_code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, **extra_context: Any) -> None:
        """Initialize invalid argument error.

        Args:
            argument: Name of the parameter that was ``None``.
            **extra_context: Additional debugging context (e.g., operation).
        """
        self.argument = argument
        message = f"Argument '{argument}' must not be None"
        super().__init__(message, {"argument": argument, **extra_context})


class StoreDisposedError(DomainError):
    """Raised when an operation is invoked on a store that was closed.

    Attributes:
        error_code: "STORE_DISPOSED" (class constant).
        store: Class name of the disposed store.
    """

    error_code: str = "STORE_DISPOSED"

    def __init__(self, store: str, **extra_context: Any) -> None:
        """Initialize disposed store error.

        Args:
            store: Name of the disposed store class.
            **extra_context: Additional debugging context (e.g., operation).
        """
        self.store = store
        message = f"{store} has been closed"
        super().__init__(message, {"store": store, **extra_context})
