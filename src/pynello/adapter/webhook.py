"""HTTP(S) receiver for webhook events in DynDNS mode.

When the webhook points at an externally reachable URL (instead of the
cloud relay), the adapter serves it itself with :mod:`aiohttp.web`.
"""

from __future__ import annotations

import json
import logging
import ssl
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlsplit

from aiohttp import web

from pynello.config import NelloConfig
from pynello.exceptions import NelloConfigError

_logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[bool]]


def parse_port(url: str) -> int | None:
    """Port given explicitly in *url*, or ``None``."""
    try:
        return urlsplit(url).port
    except ValueError:
        return None


def build_ssl_context(config: NelloConfig) -> ssl.SSLContext | None:
    """TLS context for ``config.secure``; ``None`` for plain HTTP."""
    if not config.secure:
        return None
    if not config.cert_public or not config.cert_private:
        raise NelloConfigError("Secure webhook listener needs both a public certificate and a private key.")
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(config.cert_public, config.cert_private)
    if config.cert_chained:
        context.load_verify_locations(config.cert_chained)
    return context


class WebhookListener:
    """Accepts JSON event POSTs on any path and hands them to *on_event*."""

    def __init__(
        self,
        port: int,
        on_event: EventHandler,
        *,
        host: str = "0.0.0.0",  # noqa: S104
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self._port = port
        self._host = host
        self._on_event = on_event
        self._ssl_context = ssl_context
        self._runner: web.AppRunner | None = None

    @property
    def port(self) -> int:
        return self._port

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/{tail:.*}", self._handle)
        return app

    async def _handle(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            _logger.warning("Ignoring webhook request with invalid JSON body.")
            return web.Response(status=400, text="invalid json")
        accepted = await self._on_event(payload)
        return web.json_response({"result": accepted})

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port, ssl_context=self._ssl_context)
        try:
            await site.start()
        except Exception:
            await runner.cleanup()
            raise
        self._runner = runner
        _logger.info("Webhook listener started on port %d.", self._port)

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        if runner is not None:
            await runner.cleanup()
