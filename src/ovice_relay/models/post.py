"""Data models for relayed messages and the bot account."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr


@dataclass(frozen=True)
class BotIdentity:
    """The resolved bot account, fixed for the lifetime of the process."""

    user_id: str

    def __str__(self) -> str:
        return self.user_id


@dataclass(frozen=True)
class Bot:
    """A bot account to be created on the chat platform."""

    username: str
    display_name: str
    description: str


@dataclass(frozen=True)
class User:
    """A user account as returned by the chat platform."""

    id: str
    username: str
    is_bot: bool = False

    # Platform-specific metadata
    raw: dict[str, Any] | None = None


class IncomingRequest(BaseModel):
    """Payload of a single webhook call."""

    model_config = ConfigDict(frozen=True)

    channel_id: StrictStr
    message: StrictStr


@dataclass(frozen=True)
class OutgoingPost:
    """A post to be created in a channel, authored by the bot."""

    message: str
    channel_id: str
    author_id: str
