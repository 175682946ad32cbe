"""Shared test fixtures for the oVice relay."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from ovice_relay.config.schema import (
    BotConfig,
    MattermostConfig,
    ProfileImageConfig,
    RelayConfig,
    ServerConfig,
)
from ovice_relay.interfaces.platform import PlatformError
from ovice_relay.models.post import User

BOT_USER_ID = "bot-user-id-0001"

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d4944415478da6364f8cf500f00038601805a347d6b0000000049454e44ae426082"
)


@pytest.fixture
def profile_image(tmp_path: Path) -> Path:
    """Write a profile image asset and return its path."""
    path = tmp_path / "profile.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def relay_config(profile_image: Path) -> RelayConfig:
    """Create a test relay configuration."""
    return RelayConfig(
        mattermost=MattermostConfig(
            url="https://chat.example.com",
            token="admin-token-0123456789",
        ),
        bot=BotConfig(
            username="ovice",
            display_name="oVice",
            description="A bot account created by the oVice plugin.",
            profile_image=ProfileImageConfig(path=profile_image, required=True),
        ),
        server=ServerConfig(path="/webhook"),
    )


@pytest.fixture
def mock_platform() -> AsyncMock:
    """Create a mock chat platform where the bot account already exists."""
    platform = AsyncMock()
    platform.get_user_by_username.return_value = User(
        id=BOT_USER_ID, username="ovice", is_bot=True
    )
    platform.create_bot.return_value = BOT_USER_ID
    platform.set_profile_image.return_value = None
    platform.create_post.return_value = "post-id-0001"
    return platform


@pytest.fixture
def missing_bot_platform(mock_platform: AsyncMock) -> AsyncMock:
    """Create a mock chat platform where the bot account does not exist yet."""
    mock_platform.get_user_by_username.side_effect = PlatformError(
        "GET /users/username/ovice returned 404: Unable to find an existing account",
        status_code=404,
    )
    return mock_platform
