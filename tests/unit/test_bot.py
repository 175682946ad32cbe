"""Tests for bot account provisioning."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from ovice_relay.adapters.mattermost import MattermostAdapter
from ovice_relay.config.schema import BotConfig, MattermostConfig, ProfileImageConfig
from ovice_relay.core.bot import ActivationError, BotIdentityManager, load_profile_image
from ovice_relay.interfaces.platform import PlatformError
from ovice_relay.models.post import Bot, BotIdentity, User

BOT_ID = "bot-user-id-0001"


@pytest.fixture
def bot_config(profile_image: Path) -> BotConfig:
    """Create a bot configuration with a required profile image."""
    return BotConfig(profile_image=ProfileImageConfig(path=profile_image, required=True))


@pytest.fixture
def bot() -> Bot:
    """The bot account described by the default configuration."""
    return Bot(
        username="ovice",
        display_name="oVice",
        description="A bot account created by the oVice plugin.",
    )


class TestResolveOrCreate:
    """Test bot lookup and creation."""

    @pytest.mark.asyncio
    async def test_existing_account(
        self, mock_platform: AsyncMock, bot_config: BotConfig, bot: Bot
    ) -> None:
        """Test that an existing account is returned without creation."""
        manager = BotIdentityManager(mock_platform, bot_config)

        identity = await manager.resolve_or_create(bot)

        assert identity == BotIdentity(BOT_ID)
        mock_platform.get_user_by_username.assert_called_once_with("ovice")
        mock_platform.create_bot.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_account_created(
        self, missing_bot_platform: AsyncMock, bot_config: BotConfig, bot: Bot
    ) -> None:
        """Test that a not-found lookup creates the bot."""
        manager = BotIdentityManager(missing_bot_platform, bot_config)

        identity = await manager.resolve_or_create(bot)

        assert identity.user_id == BOT_ID
        missing_bot_platform.create_bot.assert_called_once_with(bot)

    @pytest.mark.asyncio
    async def test_other_lookup_failure_propagates(
        self, mock_platform: AsyncMock, bot_config: BotConfig, bot: Bot
    ) -> None:
        """Test that non-404 lookup failures are not treated as missing."""
        mock_platform.get_user_by_username.side_effect = PlatformError("forbidden", 403)
        manager = BotIdentityManager(mock_platform, bot_config)

        with pytest.raises(PlatformError, match="forbidden"):
            await manager.resolve_or_create(bot)

        mock_platform.create_bot.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(
        self, mock_platform: AsyncMock, bot_config: BotConfig, bot: Bot
    ) -> None:
        """Test that a lookup without a response is not treated as missing."""
        mock_platform.get_user_by_username.side_effect = PlatformError("connection refused")
        manager = BotIdentityManager(mock_platform, bot_config)

        with pytest.raises(PlatformError):
            await manager.resolve_or_create(bot)

        mock_platform.create_bot.assert_not_called()

    @pytest.mark.asyncio
    async def test_creation_failure_propagates(
        self, missing_bot_platform: AsyncMock, bot_config: BotConfig, bot: Bot
    ) -> None:
        """Test that a failed creation is raised."""
        missing_bot_platform.create_bot.side_effect = PlatformError("bot creation disabled", 403)
        manager = BotIdentityManager(missing_bot_platform, bot_config)

        with pytest.raises(PlatformError, match="bot creation disabled"):
            await manager.resolve_or_create(bot)

    @pytest.mark.asyncio
    async def test_idempotent_after_creation(self, bot_config: BotConfig, bot: Bot) -> None:
        """Test that a second resolution returns the same id and creates nothing."""
        accounts: dict[str, str] = {}
        platform = AsyncMock()

        async def get_user(username: str) -> User:
            if username not in accounts:
                raise PlatformError("not found", 404)
            return User(id=accounts[username], username=username, is_bot=True)

        async def create_bot(new_bot: Bot) -> str:
            accounts[new_bot.username] = BOT_ID
            return BOT_ID

        platform.get_user_by_username.side_effect = get_user
        platform.create_bot.side_effect = create_bot

        first = await BotIdentityManager(platform, bot_config).resolve_or_create(bot)
        second = await BotIdentityManager(platform, bot_config).resolve_or_create(bot)

        assert first == second == BotIdentity(BOT_ID)
        assert platform.create_bot.call_count == 1


class TestActivate:
    """Test full activation."""

    @pytest.mark.asyncio
    async def test_activate_sets_profile_image(
        self, mock_platform: AsyncMock, bot_config: BotConfig, profile_image: Path
    ) -> None:
        """Test that activation uploads the configured image."""
        manager = BotIdentityManager(mock_platform, bot_config)

        identity = await manager.activate()

        assert identity == BotIdentity(BOT_ID)
        mock_platform.set_profile_image.assert_called_once_with(
            BOT_ID, profile_image.read_bytes()
        )

    @pytest.mark.asyncio
    async def test_activate_wraps_lookup_failure(
        self, mock_platform: AsyncMock, bot_config: BotConfig
    ) -> None:
        """Test that lookup failures become activation errors."""
        mock_platform.get_user_by_username.side_effect = PlatformError("forbidden", 403)
        manager = BotIdentityManager(mock_platform, bot_config)

        with pytest.raises(ActivationError, match="couldn't get or create bot user: forbidden"):
            await manager.activate()

        mock_platform.set_profile_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_activate_wraps_malformed_lookup_reply(self, bot_config: BotConfig) -> None:
        """Test that a lookup reply without an account id fails activation cleanly."""
        adapter = MattermostAdapter(
            MattermostConfig(url="https://chat.example.com", token="admin-token"),
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json={"username": "ovice"})
            ),
        )
        manager = BotIdentityManager(adapter, bot_config)

        with pytest.raises(ActivationError, match="couldn't get or create bot user: .*no 'id'"):
            await manager.activate()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_activate_fails_on_image_upload(
        self, mock_platform: AsyncMock, bot_config: BotConfig
    ) -> None:
        """Test that a failed upload is fatal when the image is required."""
        mock_platform.set_profile_image.side_effect = PlatformError("too large", 413)
        manager = BotIdentityManager(mock_platform, bot_config)

        with pytest.raises(ActivationError, match="couldn't set profile image"):
            await manager.activate()

    @pytest.mark.asyncio
    async def test_activate_fails_on_missing_image(
        self, mock_platform: AsyncMock, tmp_path: Path
    ) -> None:
        """Test that an unreadable image is fatal when required."""
        config = BotConfig(
            profile_image=ProfileImageConfig(path=tmp_path / "missing.png", required=True)
        )
        manager = BotIdentityManager(mock_platform, config)

        with pytest.raises(ActivationError, match="couldn't read profile image"):
            await manager.activate()

        mock_platform.set_profile_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_optional_image_failure_downgraded(
        self, mock_platform: AsyncMock, profile_image: Path
    ) -> None:
        """Test that image failures only warn when the image is optional."""
        config = BotConfig(profile_image=ProfileImageConfig(path=profile_image, required=False))
        mock_platform.set_profile_image.side_effect = PlatformError("too large", 413)
        manager = BotIdentityManager(mock_platform, config)

        identity = await manager.activate()

        assert identity == BotIdentity(BOT_ID)

    def test_bot_from_config(self, mock_platform: AsyncMock) -> None:
        """Test that the bot description comes from configuration."""
        config = BotConfig(username="relay-bot", display_name="Relay", description="d")
        manager = BotIdentityManager(mock_platform, config)

        assert manager.bot == Bot(username="relay-bot", display_name="Relay", description="d")


class TestLoadProfileImage:
    """Test profile image loading."""

    def test_reads_bytes(self, profile_image: Path) -> None:
        """Test reading an existing image."""
        assert load_profile_image(profile_image).startswith(b"\x89PNG")

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises ActivationError."""
        with pytest.raises(ActivationError):
            load_profile_image(tmp_path / "nope.png")
