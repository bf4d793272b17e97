"""Structured logging configuration using structlog.

This module provides environment-aware structured logging with:
- JSON output for production environments
- Console output with colors for development
- Standard-library ``logging`` records rendered through the same processors
- Redaction of identity secrets (password hashes, security stamps, token
  values, authenticator keys, recovery codes)

Usage:
    # During application startup
    from tessera.infra.observability.logging import configure_logging
    configure_logging()

    # In application code
    from tessera.infra.observability import get_logger
    logger = get_logger(__name__)
    logger.info("user_created", user_id="3f2c...")
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

# Type alias for structlog processor
Processor = structlog.types.Processor

# Field names whose values never reach a log sink
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "password_hash",
        "security_stamp",
        "concurrency_stamp",
        "token",
        "value",
        "authenticator_key",
        "recovery_codes",
        "code",
        "codes",
        "provider_key",
        "secret",
        "credential",
    }
)

REDACTED_VALUE: str = "***REDACTED***"


class LoggingSettings(BaseSettings):
    """Logging configuration settings from environment variables.

    Loads configuration from environment variables:
    - LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment name (development, staging, production, test)

    Attributes:
        log_level: Minimum log level to output. Default: INFO
        environment: Environment name for format selection. Default: development
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Minimum log level to output",
    )
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Environment name for format selection",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return str(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level.

        Raises:
            ValueError: If log level is not a valid Python logging level.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            msg = f"log_level must be one of {valid_levels}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        """JSON logs in production, console rendering elsewhere."""
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        """Log level as a ``logging`` module constant."""
        return getattr(logging, self.log_level, logging.INFO)


class SensitiveDataProcessor:
    """Structlog processor to redact identity secrets from log context.

    Redacts values for fields matching:
    1. Exact field names in SENSITIVE_FIELDS (case-insensitive)
    2. Field names containing "password", "token", "stamp" or "secret"

    Example:
        >>> processor = SensitiveDataProcessor()
        >>> event_dict = {"event": "user_created", "password_hash": "AQAAAA..."}
        >>> processor(None, "info", event_dict)["password_hash"]
        '***REDACTED***'
    """

    _SENSITIVE_SUBSTRINGS: tuple[str, ...] = ("password", "token", "stamp", "secret")

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        """Redact sensitive fields in event_dict."""
        for key in list(event_dict.keys()):
            if self._is_sensitive(key):
                event_dict[key] = REDACTED_VALUE
        return event_dict

    def _is_sensitive(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        # token_name, login_provider etc. are identifiers, not secrets
        if key_lower.endswith(("_name", "_count", "_id")):
            return False
        return any(part in key_lower for part in self._SENSITIVE_SUBSTRINGS)


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings instance.

    Clear cache with ``get_logging_settings.cache_clear()`` for testing.
    """
    return LoggingSettings()


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and route standard-library logging through it.

    Configures:
    - Context variable merging (bind scope ids with ``structlog.contextvars``)
    - Log level filtering
    - ISO 8601 timestamps (UTC)
    - Sensitive data redaction
    - Environment-aware rendering (JSON for production, console otherwise)
    - A root ``logging`` handler using ``structlog.stdlib.ProcessorFormatter``
      so repository and database logs share the format

    Args:
        settings: Optional LoggingSettings instance. If not provided,
            settings are loaded from environment variables.
    """
    if settings is None:
        settings = get_logging_settings()

    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    processors = [*_shared_processors(), structlog.processors.format_exc_info, renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    # Replace only a handler installed by an earlier call; host handlers stay.
    for existing in root.handlers[:]:
        if isinstance(existing.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level_int)


def get_logger(name: str | None = None) -> structlog.typing.WrappedLogger:
    """Get a structlog logger bound to the given name.

    Args:
        name: Logger name (typically __name__ from calling module).
            If None, returns unbound logger.

    Returns:
        Lazy structlog logger carrying ``logger_name`` in every event.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("claims_added", user_id="3f2c...", count=2)
    """
    # Must stay a lazy proxy: module loggers exist before configure_logging() runs.
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)
