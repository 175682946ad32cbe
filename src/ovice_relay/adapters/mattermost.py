"""Mattermost chat adapter using the REST API v4 over httpx.

This module implements the ChatPlatform protocol against a Mattermost
server:
- Account lookup by username
- Bot account creation
- Profile image upload
- Post creation

Administrative calls authenticate with the configured access token. Posts
are sent with the bot's own token when one is configured, so the server
records the bot as the author.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..config.schema import MattermostConfig
from ..interfaces.platform import PlatformError
from ..models.post import Bot, OutgoingPost, User

log = structlog.get_logger()

API_PREFIX = "/api/v4"


class MattermostAdapter:
    """Mattermost adapter implementing the ChatPlatform protocol.

    Example:
        config = MattermostConfig(url="https://chat.example.com", token="...")
        adapter = MattermostAdapter(config)

        user = await adapter.get_user_by_username("ovice")
        await adapter.create_post(OutgoingPost("hello", "C1", user.id))
        await adapter.close()
    """

    def __init__(
        self,
        config: MattermostConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Mattermost adapter.

        Args:
            config: Mattermost connection configuration.
            transport: Optional httpx transport (used to stub the server).
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=f"{config.url}{API_PREFIX}",
            headers={"Authorization": f"Bearer {config.token}"},
            timeout=config.timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and translate failures into PlatformError.

        Raises:
            PlatformError: On transport errors, bodies that cannot be
                encoded, or non-2xx responses.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PlatformError(f"{method} {path} failed: {e}") from e
        except (ValueError, TypeError) as e:
            # Raised while encoding the body, e.g. a lone surrogate in a message
            raise PlatformError(f"{method} {path} could not be sent: {e}") from e

        if response.is_success:
            return response

        raise PlatformError(
            f"{method} {path} returned {response.status_code}: {_error_message(response)}",
            status_code=response.status_code,
        )

    async def get_user_by_username(self, username: str) -> User:
        """Look up an account by username.

        Raises:
            PlatformError: status_code 404 if the account does not exist.
        """
        path = f"/users/username/{username}"
        data = _json_object(await self._request("GET", path), path)
        return User(
            id=_required_str(data, "id", path),
            username=data.get("username", username),
            is_bot=bool(data.get("is_bot", False)),
            raw=data,
        )

    async def create_bot(self, bot: Bot) -> str:
        """Create a bot account and return its user ID."""
        response = await self._request(
            "POST",
            "/bots",
            json={
                "username": bot.username,
                "display_name": bot.display_name,
                "description": bot.description,
            },
        )
        user_id = _required_str(_json_object(response, "/bots"), "user_id", "/bots")
        log.debug("mattermost_bot_created", username=bot.username, user_id=user_id)
        return user_id

    async def set_profile_image(self, user_id: str, image: bytes) -> None:
        """Upload ``image`` as the profile picture of ``user_id``."""
        await self._request(
            "POST",
            f"/users/{user_id}/image",
            files={"image": ("profile.png", image, "image/png")},
        )

    async def create_post(self, post: OutgoingPost) -> str:
        """Create a post and return its ID."""
        kwargs: dict[str, Any] = {
            "json": {
                "channel_id": post.channel_id,
                "message": post.message,
                "user_id": post.author_id,
            },
        }
        if self._config.bot_token:
            kwargs["headers"] = {"Authorization": f"Bearer {self._config.bot_token}"}

        response = await self._request("POST", "/posts", **kwargs)
        post_id = str(_json_object(response, "/posts").get("id", ""))
        log.debug("mattermost_post_created", channel_id=post.channel_id, post_id=post_id)
        return post_id

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Extract the server's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text


def _json_object(response: httpx.Response, path: str) -> dict[str, Any]:
    """Decode a successful response body that must be a JSON object.

    Raises:
        PlatformError: If the body is not JSON or not an object.
    """
    try:
        body = response.json()
    except ValueError as e:
        content_type = response.headers.get("content-type", "unknown")
        raise PlatformError(f"{path} returned a non-JSON body ({content_type})") from e
    if not isinstance(body, dict):
        raise PlatformError(f"{path} returned {type(body).__name__}, expected an object")
    return body


def _required_str(data: dict[str, Any], key: str, path: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise PlatformError(f"{path} response has no {key!r}")
    return value
