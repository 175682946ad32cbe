"""Structured logging for the relay.

structlog renders through the standard library logging handlers, as JSON
for log shippers or as colored console output. Every entry carries the
service name and version, and every string value is passed through the
TokenRedactor built from the configured Mattermost tokens.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from ovice_relay._version import __version__
from ovice_relay.utils.security import TokenRedactor

SERVICE_NAME = "ovice-relay"


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Replaced by configure_logging once the configured tokens are known
_redactor = TokenRedactor()


def redact_value(value: Any) -> Any:
    """Redact tokens from a log value, descending into dicts, lists and tuples."""
    if isinstance(value, str):
        return _redactor.redact(value)
    if isinstance(value, dict):
        return {k: redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_value(v) for v in value)
    return value


def redact_tokens(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Structlog processor applying redact_value to every field."""
    for key, value in event_dict.items():
        event_dict[key] = redact_value(value)
    return event_dict


def add_service_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Structlog processor adding ``service`` and ``version``."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderer(log_format: LogFormat) -> Any:
    if log_format == LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(), exception_formatter=structlog.dev.plain_traceback
    )


def _handlers(file_path: Path | str | None) -> tuple[list[logging.Handler], str | None]:
    """Build the stdlib handlers, returning an error text if the file is unusable."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file_path is None:
        return handlers, None

    path = Path(file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    except OSError as e:
        return handlers, f"could not open log file {path}: {e}"
    return handlers, None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    secrets: Iterable[str | None] = (),
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level to emit
        log_format: json or console
        file_path: Also write to this file when set
        secrets: Token values to redact wherever they appear

    Example:
        configure_logging(
            level=config.logging.level,
            log_format=config.logging.format,
            secrets=[config.mattermost.token, config.mattermost.bot_token],
        )
    """
    global _redactor

    level = LogLevel(str(level).upper())
    log_format = LogFormat(str(log_format).lower())
    _redactor = TokenRedactor(secrets)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context,
            structlog.processors.format_exc_info,
            redact_tokens,
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers, file_error = _handlers(file_path)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.value),
        handlers=handlers,
        force=True,
    )
    if file_error is not None:
        structlog.get_logger().warning("log_file_unavailable", error=file_error)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every log entry of the current request.

    Example:
        bind_context(method="POST", path="/webhook")
        log.info("post_created")  # Includes method and path
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound contextual variables."""
    structlog.contextvars.clear_contextvars()


class LogEventNames:
    """Standard log event names for consistency."""

    # Relay lifecycle
    RELAY_STARTING = "relay_starting"
    RELAY_STOPPED = "relay_stopped"

    # Activation
    BOT_USER_FOUND = "bot_user_found"
    BOT_USER_CREATED = "bot_user_created"
    PROFILE_IMAGE_SET = "profile_image_set"
    PROFILE_IMAGE_FAILED = "profile_image_failed"
    ACTIVATION_COMPLETE = "activation_complete"
    ACTIVATION_FAILED = "activation_failed"

    # Webhook handling
    JSON_PARSE_ERROR = "json_parse_error"
    POST_CREATED = "post_created"
    POST_CREATE_FAILED = "post_create_failed"

    # Configuration
    CONFIGURATION_UPDATED = "configuration_updated"
    CONFIGURATION_RELOAD_FAILED = "configuration_reload_failed"
