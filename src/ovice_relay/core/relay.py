"""Webhook relay handler.

Turns one inbound HTTP request into one Mattermost post. Each request
walks a fixed sequence, stopping at the first failed step:

1. Method check: POST only (405)
2. Content-type check: application/json only (415)
3. Body decode into an IncomingRequest (400 or 500, see DecodeErrorKind)
4. Best-effort delivery of the post as the bot
5. 200 "ok"

Delivery failures are logged and never reach the caller: a request that
decodes cleanly is always answered 200, whether or not the platform
accepted the post.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette import status
from starlette.requests import ClientDisconnect, Request
from starlette.responses import PlainTextResponse, Response

from ovice_relay.interfaces.platform import PlatformError
from ovice_relay.models.post import IncomingRequest, OutgoingPost
from ovice_relay.utils.logging import LogEventNames
from ovice_relay.utils.security import sanitize_for_logging

if TYPE_CHECKING:
    from ovice_relay.core.state import RelayState
    from ovice_relay.interfaces.platform import ChatPlatform

log = structlog.get_logger()

JSON_MEDIA_TYPE = "application/json"


class DecodeErrorKind(StrEnum):
    """Classes of body decode failure, each with its own response."""

    SYNTAX = "syntax"
    FIELD = "field"
    EMPTY = "empty"
    TRUNCATED = "truncated"
    OTHER = "other"


# (status, message prefix); OTHER carries no prefix, its detail is never shown
_DECODE_RESPONSES: dict[DecodeErrorKind, tuple[int, str | None]] = {
    DecodeErrorKind.SYNTAX: (status.HTTP_400_BAD_REQUEST, "invalid json syntax"),
    DecodeErrorKind.FIELD: (status.HTTP_400_BAD_REQUEST, "invalid json field"),
    DecodeErrorKind.EMPTY: (status.HTTP_400_BAD_REQUEST, "request body is empty"),
    DecodeErrorKind.TRUNCATED: (status.HTTP_400_BAD_REQUEST, "invalid json syntax"),
    DecodeErrorKind.OTHER: (status.HTTP_500_INTERNAL_SERVER_ERROR, None),
}


class DecodeError(Exception):
    """Raised when a webhook body cannot be decoded into an IncomingRequest."""

    def __init__(self, kind: DecodeErrorKind, detail: str) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


def decode_request(body: bytes) -> IncomingRequest:
    """Decode a webhook body.

    Args:
        body: Raw request body

    Returns:
        The decoded request

    Raises:
        DecodeError: Classified by kind
    """
    if not body.strip():
        raise DecodeError(DecodeErrorKind.EMPTY, "unexpected end of input")

    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        if e.pos >= len(e.doc.rstrip()):
            raise DecodeError(DecodeErrorKind.TRUNCATED, f"unexpected end of input: {e}") from e
        raise DecodeError(DecodeErrorKind.SYNTAX, str(e)) from e
    except UnicodeDecodeError as e:
        raise DecodeError(DecodeErrorKind.OTHER, str(e)) from e
    except ValueError as e:
        # Integer literals beyond the interpreter's digit limit; a number
        # can never fill a string field
        raise DecodeError(DecodeErrorKind.FIELD, str(e)) from e
    except RecursionError as e:
        raise DecodeError(DecodeErrorKind.OTHER, str(e)) from e

    if not isinstance(document, dict):
        raise DecodeError(
            DecodeErrorKind.FIELD,
            f"cannot decode {type(document).__name__} into an object",
        )

    try:
        return IncomingRequest.model_validate(document)
    except ValidationError as e:
        raise DecodeError(DecodeErrorKind.FIELD, _describe_validation_error(e)) from e


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "body"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


def is_json_content_type(value: str | None) -> bool:
    """Return True if a Content-Type header declares JSON.

    Parameters such as ``charset`` are ignored.
    """
    if not value:
        return False
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type == JSON_MEDIA_TYPE


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt."""

    delivered: bool
    post_id: str | None = None
    error: str | None = None


class WebhookRelayHandler:
    """Relays webhook requests into chat posts.

    Example:
        handler = WebhookRelayHandler(platform, state)
        response = await handler.handle(request)
    """

    def __init__(self, platform: ChatPlatform, state: RelayState) -> None:
        """Initialize the handler.

        Args:
            platform: Chat platform adapter posts are created through
            state: Shared relay state holding the bot identity
        """
        self._platform = platform
        self._state = state

    async def handle(self, request: Request) -> Response:
        """Process one webhook request and return the response to send."""
        if request.method != "POST":
            return Response(
                status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
                headers={"Allow": "POST"},
            )

        if not is_json_content_type(request.headers.get("content-type")):
            return Response(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

        try:
            incoming = decode_request(await self._read_body(request))
        except DecodeError as e:
            return self._decode_error_response(e)

        await self.deliver_best_effort(incoming)

        return PlainTextResponse("ok", status_code=status.HTTP_200_OK)

    async def _read_body(self, request: Request) -> bytes:
        try:
            return await request.body()
        except ClientDisconnect as e:
            raise DecodeError(
                DecodeErrorKind.OTHER, "client disconnected while sending body"
            ) from e

    def _decode_error_response(self, error: DecodeError) -> Response:
        log.error(
            LogEventNames.JSON_PARSE_ERROR,
            kind=error.kind.value,
            error=sanitize_for_logging(error.detail),
        )

        status_code, prefix = _DECODE_RESPONSES[error.kind]
        if prefix is None:
            return Response(status_code=status_code)
        return PlainTextResponse(f"{prefix}: {error.detail}", status_code=status_code)

    async def deliver_best_effort(self, incoming: IncomingRequest) -> DeliveryResult:
        """Create the post for ``incoming`` as the bot.

        A platform failure is logged and reported in the result; it is
        never raised, so the caller's response does not depend on it.
        """
        post = OutgoingPost(
            message=incoming.message,
            channel_id=incoming.channel_id,
            author_id=self._state.bot_identity.user_id,
        )

        try:
            post_id = await self._platform.create_post(post)
        except PlatformError as e:
            log.error(
                LogEventNames.POST_CREATE_FAILED,
                user_id=post.author_id,
                channel_id=sanitize_for_logging(post.channel_id),
                bot_username=self._state.configuration.bot.username,
                error=str(e),
            )
            return DeliveryResult(delivered=False, error=str(e))

        log.info(
            LogEventNames.POST_CREATED,
            user_id=post.author_id,
            channel_id=sanitize_for_logging(post.channel_id),
            post_id=post_id,
        )
        return DeliveryResult(delivered=True, post_id=post_id)
