"""Abstract interface for the chat platform the relay posts into."""

from typing import Protocol

from ..models.post import Bot, OutgoingPost, User


class PlatformError(Exception):
    """Raised when a chat platform call fails.

    Attributes:
        status_code: HTTP status returned by the platform, or None when the
            request never got a response (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Return True if the platform reported the resource as missing."""
        return self.status_code == 404


class ChatPlatform(Protocol):
    """Abstract interface for chat platform integrations.

    This protocol defines the calls the relay needs from the platform
    that hosts its bot account and channels.
    """

    async def get_user_by_username(self, username: str) -> User:
        """
        Look up an account by username.

        Args:
            username: Account username (without the leading @)

        Returns:
            The matching user

        Raises:
            PlatformError: With status_code 404 if no such account exists,
                or any other status for other failures
        """
        ...

    async def create_bot(self, bot: Bot) -> str:
        """
        Create a bot account.

        Args:
            bot: Username, display name and description of the bot

        Returns:
            User ID of the new bot account

        Raises:
            PlatformError: If creation fails
        """
        ...

    async def set_profile_image(self, user_id: str, image: bytes) -> None:
        """
        Replace the profile image of an account.

        Args:
            user_id: Target account
            image: Encoded image (PNG)

        Raises:
            PlatformError: If the upload fails
        """
        ...

    async def create_post(self, post: OutgoingPost) -> str:
        """
        Create a post in a channel.

        Args:
            post: Message, channel and author of the post

        Returns:
            ID of the created post

        Raises:
            PlatformError: If the platform rejects the post
        """
        ...

    async def close(self) -> None:
        """Release connections held by the adapter."""
        ...
