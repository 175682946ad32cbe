"""Concrete implementations of provider interfaces."""

from .mattermost import MattermostAdapter

__all__ = [
    "MattermostAdapter",
]
