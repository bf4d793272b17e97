"""Tessera Infra Observability: structlog logging configuration."""

from __future__ import annotations

from tessera.infra.observability.logging import (
    LoggingSettings,
    configure_logging,
    get_logger,
)

__all__ = [
    "LoggingSettings",
    "configure_logging",
    "get_logger",
]
