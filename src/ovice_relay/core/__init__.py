"""Core relay components."""

from .bot import ActivationError, BotIdentityManager
from .relay import DecodeError, DecodeErrorKind, WebhookRelayHandler, decode_request
from .state import IdentityNotResolvedError, RelayError, RelayState

__all__ = [
    "ActivationError",
    "BotIdentityManager",
    "DecodeError",
    "DecodeErrorKind",
    "IdentityNotResolvedError",
    "RelayError",
    "RelayState",
    "WebhookRelayHandler",
    "decode_request",
]
