"""FastAPI application factory.

The lifespan runs activation before uvicorn starts accepting requests: if
the bot account cannot be resolved, startup fails and the relay never
becomes ready.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request, Response

from ovice_relay._version import __version__
from ovice_relay.adapters.mattermost import MattermostAdapter
from ovice_relay.config.schema import RelayConfig
from ovice_relay.core.bot import BotIdentityManager
from ovice_relay.core.relay import WebhookRelayHandler
from ovice_relay.core.state import RelayState, reload_configuration
from ovice_relay.interfaces.platform import ChatPlatform
from ovice_relay.utils.logging import LogEventNames, bind_context, clear_context

log = structlog.get_logger()

# Every method is routed to the handler so it can answer 405 itself
WEBHOOK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: RelayConfig,
    platform: ChatPlatform | None = None,
    config_path: Path | None = None,
) -> FastAPI:
    """
    Create the relay application.

    Args:
        config: Validated relay configuration
        platform: Chat platform adapter (defaults to a MattermostAdapter)
        config_path: Configuration file to re-read on SIGHUP

    Returns:
        FastAPI application instance
    """
    chat: ChatPlatform = platform or MattermostAdapter(config.mattermost)
    state = RelayState(config)
    handler = WebhookRelayHandler(chat, state)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info(LogEventNames.RELAY_STARTING, version=__version__, path=config.server.path)

        manager = BotIdentityManager(chat, config.bot)
        try:
            state.set_bot_identity(await manager.activate())
        except Exception:
            await chat.close()
            raise

        reload_installed = _install_reload_handler(state, config_path)
        try:
            yield
        finally:
            if reload_installed:
                asyncio.get_running_loop().remove_signal_handler(signal.SIGHUP)
            await chat.close()
            log.info(LogEventNames.RELAY_STOPPED)

    app = FastAPI(
        title="oVice Relay",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.relay = state
    app.state.handler = handler

    async def webhook(request: Request) -> Response:
        bind_context(method=request.method, path=request.url.path)
        try:
            return await handler.handle(request)
        finally:
            clear_context()

    app.add_api_route(config.server.path, webhook, methods=WEBHOOK_METHODS)

    return app


def _install_reload_handler(state: RelayState, config_path: Path | None) -> bool:
    """Reload configuration on SIGHUP where the platform supports it."""
    if config_path is None or not hasattr(signal, "SIGHUP"):
        return False

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGHUP, reload_configuration, state, config_path)
        return True
    return False
