"""High-level async client for the nello public API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

import aiohttp

from pynello._api import door as _door_api
from pynello._api import locations as _locations_api
from pynello._api import time_windows as _time_windows_api
from pynello._api import token as _token_api
from pynello._api import webhook as _webhook_api
from pynello._constants import WEBHOOK_ACTIONS
from pynello._transport import JsonTransport
from pynello.config import NelloConfig
from pynello.exceptions import NelloError
from pynello.models.location import Location
from pynello.models.time_window import TimeWindow, TimeWindowRequest
from pynello.models.token import AuthToken

_logger = logging.getLogger(__name__)


class NelloApi(Protocol):
    """Operations the adapter consumes from the vendor API.

    :class:`NelloClient` is the production implementation; tests pass
    in-memory fakes.
    """

    async def get_locations(self) -> list[Location]: ...

    async def get_time_windows(self, location_id: str) -> list[TimeWindow]: ...

    async def create_time_window(self, location_id: str, request: TimeWindowRequest) -> TimeWindow: ...

    async def delete_time_window(self, location_id: str, time_window_id: str) -> None: ...

    async def open_door(self, location_id: str) -> None: ...

    async def attach_webhook(self, location_id: str, url: str) -> str: ...

    async def request_token(self, client_id: str, client_secret: str) -> AuthToken: ...


class NelloClient:
    """Async client for the nello public API.

    Usage::

        async with NelloClient(config) as client:
            locations = await client.get_locations()
    """

    def __init__(
        self,
        config: NelloConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: JsonTransport | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> NelloClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        self._transport = JsonTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    def _require_transport(self) -> JsonTransport:
        if self._transport is None:
            raise NelloError("Client not initialized. Use 'async with NelloClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Locations & door
    # ------------------------------------------------------------------

    async def get_locations(self) -> list[Location]:
        """Fetch all locations the token grants access to."""
        return await _locations_api.fetch_locations(self._require_transport())

    async def open_door(self, location_id: str) -> None:
        """Open the door of a location."""
        _logger.debug("Opening door of location=%s", location_id)
        await _door_api.open_door(self._require_transport(), location_id)

    # ------------------------------------------------------------------
    # Time windows
    # ------------------------------------------------------------------

    async def get_time_windows(self, location_id: str) -> list[TimeWindow]:
        """Fetch the time windows of a location."""
        return await _time_windows_api.fetch_time_windows(self._require_transport(), location_id)

    async def create_time_window(self, location_id: str, request: TimeWindowRequest) -> TimeWindow:
        """Create a time window."""
        return await _time_windows_api.create_time_window(self._require_transport(), location_id, request)

    async def delete_time_window(self, location_id: str, time_window_id: str) -> None:
        """Delete a time window."""
        await _time_windows_api.delete_time_window(self._require_transport(), location_id, time_window_id)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def attach_webhook(
        self,
        location_id: str,
        url: str,
        *,
        actions: Iterable[str] = WEBHOOK_ACTIONS,
    ) -> str:
        """Register *url* for the location's events and return it."""
        return await _webhook_api.attach_webhook(self._require_transport(), location_id, url, actions=actions)

    async def detach_webhook(self, location_id: str) -> None:
        await _webhook_api.detach_webhook(self._require_transport(), location_id)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def request_token(self, client_id: str, client_secret: str) -> AuthToken:
        """Exchange client credentials for an access token."""
        return await _token_api.request_token(self._config, self._require_transport(), client_id, client_secret)
