"""Utility functions and helpers.

- security: Token redaction, log hygiene, username validation
- logging: Structured logging with token redaction
"""

from ovice_relay.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
)
from ovice_relay.utils.security import TokenRedactor

__all__ = [
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "TokenRedactor",
    "bind_context",
    "clear_context",
    "configure_logging",
]
