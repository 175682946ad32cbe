"""Process-wide relay state.

Holds the bot identity, written once during activation and read by every
request afterwards, and the active configuration snapshot, which an
administrative reload may swap while requests are in flight.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from ovice_relay.config.loader import load_config
from ovice_relay.utils.logging import LogEventNames, configure_logging

if TYPE_CHECKING:
    from ovice_relay.config.schema import RelayConfig
    from ovice_relay.models.post import BotIdentity

log = structlog.get_logger()


class RelayError(Exception):
    """Base exception for relay errors."""


class IdentityNotResolvedError(RelayError):
    """The bot identity was read before activation resolved it."""


class RelayState:
    """Shared state of a running relay.

    The configuration snapshot is replaced wholesale under a lock; readers
    take the current reference and never hold the lock across a platform
    call.
    """

    def __init__(self, config: RelayConfig) -> None:
        self._lock = threading.Lock()
        self._config = config
        self._bot_identity: BotIdentity | None = None

    @property
    def bot_identity(self) -> BotIdentity:
        """Return the resolved bot identity.

        Raises:
            IdentityNotResolvedError: If activation has not completed.
        """
        identity = self._bot_identity
        if identity is None:
            raise IdentityNotResolvedError("bot identity has not been resolved")
        return identity

    @property
    def is_activated(self) -> bool:
        """Return True once the bot identity is set."""
        return self._bot_identity is not None

    def set_bot_identity(self, identity: BotIdentity) -> None:
        """Record the bot identity. It may only be set once.

        Raises:
            RelayError: If a different identity was already recorded.
        """
        with self._lock:
            if self._bot_identity is not None and self._bot_identity != identity:
                raise RelayError(
                    f"bot identity already resolved as {self._bot_identity.user_id}"
                )
            self._bot_identity = identity

    @property
    def configuration(self) -> RelayConfig:
        """Return the current configuration snapshot."""
        with self._lock:
            return self._config

    def set_configuration(self, config: RelayConfig) -> None:
        """Replace the configuration snapshot."""
        with self._lock:
            self._config = config
        log.info(LogEventNames.CONFIGURATION_UPDATED)


def apply_logging(config: RelayConfig, debug: bool = False) -> None:
    """Configure logging from the ``logging`` section and the Mattermost tokens."""
    file_config = config.logging.file
    configure_logging(
        level="DEBUG" if debug else config.logging.level,
        log_format=config.logging.format,
        file_path=file_config.path if file_config.enabled else None,
        secrets=[config.mattermost.token, config.mattermost.bot_token],
    )


def reload_configuration(state: RelayState, path: Path) -> bool:
    """Reload the configuration file into ``state``.

    The new logging level, format, file and token redaction take effect
    immediately. The Mattermost connection, bot account and route keep
    the values they started with. An invalid or unreadable file leaves
    everything in place.

    Returns:
        True if the new configuration was applied.
    """
    try:
        config = load_config(path)
    except (OSError, ValueError, ValidationError) as e:
        log.error(LogEventNames.CONFIGURATION_RELOAD_FAILED, path=str(path), error=str(e))
        return False

    apply_logging(config)
    state.set_configuration(config)
    return True
