"""Data models and transfer objects."""

from .post import Bot, BotIdentity, IncomingRequest, OutgoingPost, User

__all__ = [
    "Bot",
    "BotIdentity",
    "IncomingRequest",
    "OutgoingPost",
    "User",
]
