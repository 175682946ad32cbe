"""Bot account provisioning.

Runs once at startup, before the relay accepts requests: find the bot
account by its fixed username or create it, then brand it with the
profile image. Every failure here is fatal to activation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from ovice_relay.core.state import RelayError
from ovice_relay.interfaces.platform import PlatformError
from ovice_relay.models.post import Bot, BotIdentity
from ovice_relay.utils.logging import LogEventNames

if TYPE_CHECKING:
    from ovice_relay.config.schema import BotConfig
    from ovice_relay.interfaces.platform import ChatPlatform

log = structlog.get_logger()


class ActivationError(RelayError):
    """The relay could not prepare its bot account."""


class BotIdentityManager:
    """Resolves the relay's bot account on the chat platform.

    Example:
        manager = BotIdentityManager(platform, config.bot)
        identity = await manager.activate()
    """

    def __init__(self, platform: ChatPlatform, config: BotConfig) -> None:
        """Initialize the manager.

        Args:
            platform: Chat platform adapter
            config: Bot account configuration
        """
        self._platform = platform
        self._config = config

    @property
    def bot(self) -> Bot:
        """Return the bot account described by the configuration."""
        return Bot(
            username=self._config.username,
            display_name=self._config.display_name,
            description=self._config.description,
        )

    async def resolve_or_create(self, bot: Bot) -> BotIdentity:
        """Return the identity of ``bot``, creating the account if it is missing.

        Only a "not found" lookup leads to creation, so calling this again
        once the account exists returns the same identity.

        Raises:
            PlatformError: If the lookup fails for any other reason, or
                creation fails.
        """
        try:
            user = await self._platform.get_user_by_username(bot.username)
        except PlatformError as e:
            if not e.is_not_found:
                raise

            user_id = await self._platform.create_bot(bot)
            log.info(LogEventNames.BOT_USER_CREATED, username=bot.username, user_id=user_id)
            return BotIdentity(user_id)

        log.info(LogEventNames.BOT_USER_FOUND, username=bot.username, user_id=user.id)
        return BotIdentity(user.id)

    async def apply_profile_image(self, identity: BotIdentity, image: bytes) -> None:
        """Set ``image`` as the bot's profile picture.

        Raises:
            PlatformError: If the platform rejects the upload.
        """
        await self._platform.set_profile_image(identity.user_id, image)
        log.info(LogEventNames.PROFILE_IMAGE_SET, user_id=identity.user_id, size=len(image))

    async def activate(self) -> BotIdentity:
        """Resolve the bot account and apply its profile image.

        Returns:
            The bot identity to author posts with.

        Raises:
            ActivationError: If the account cannot be resolved, or the
                profile image cannot be read or set while it is required.
        """
        try:
            identity = await self.resolve_or_create(self.bot)
        except PlatformError as e:
            log.error(LogEventNames.ACTIVATION_FAILED, step="bot_user", error=str(e))
            raise ActivationError(f"couldn't get or create bot user: {e}") from e

        try:
            await self._brand(identity)
        except ActivationError as e:
            if self._config.profile_image.required:
                log.error(LogEventNames.ACTIVATION_FAILED, step="profile_image", error=str(e))
                raise
            log.warning(LogEventNames.PROFILE_IMAGE_FAILED, error=str(e))

        log.info(LogEventNames.ACTIVATION_COMPLETE, user_id=identity.user_id)
        return identity

    async def _brand(self, identity: BotIdentity) -> None:
        image = load_profile_image(self._config.profile_image.path)
        try:
            await self.apply_profile_image(identity, image)
        except PlatformError as e:
            raise ActivationError(f"couldn't set profile image: {e}") from e


def load_profile_image(path: Path) -> bytes:
    """Read the profile image asset.

    Raises:
        ActivationError: If the file cannot be read.
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ActivationError(f"couldn't read profile image: {e}") from e
