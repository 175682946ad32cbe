"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    BotConfig,
    LoggingConfig,
    MattermostConfig,
    ProfileImageConfig,
    RelayConfig,
    ServerConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "RelayConfig",
    # Sections
    "BotConfig",
    "LoggingConfig",
    "MattermostConfig",
    "ProfileImageConfig",
    "ServerConfig",
]
