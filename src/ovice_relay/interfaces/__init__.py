"""Protocol definitions for pluggable adapters."""

from .platform import ChatPlatform, PlatformError

__all__ = ["ChatPlatform", "PlatformError"]
