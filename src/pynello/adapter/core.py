"""The nello adapter: wires the API client, the state tree and the webhooks.

The host runtime drives the adapter through four entry points:

* :meth:`NelloAdapter.start` when the adapter is ready,
* :meth:`NelloAdapter.on_state_change` for every subscribed state write,
* :meth:`NelloAdapter.on_message` for messages from the settings page,
* :meth:`NelloAdapter.stop` when the adapter is unloaded.
"""

from __future__ import annotations

import contextlib
import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import aiohttp

from pynello._redact import redact_for_log
from pynello.adapter.context import AdapterContext, LocationRecord
from pynello.adapter.events import EventFeed
from pynello.adapter.nodes import (
    ADDRESS,
    CREATE_TIME_WINDOW,
    DELETE_ALL_TIME_WINDOWS,
    DELETE_TIME_WINDOW,
    EVENTS,
    OPEN_DOOR,
    TIME_WINDOWS,
    button_node,
    field_node,
)
from pynello.adapter.time_windows import TimeWindowReconciler
from pynello.adapter.webhook import WebhookListener, build_ssl_context, parse_port
from pynello.client import NelloApi, NelloClient
from pynello.config import NelloConfig
from pynello.exceptions import HostError, NelloConfigError, NelloError
from pynello.models.location import Location
from pynello.state.host import StateHost, StateObject, StateValue
from pynello.state.mirror import NodeSpec, StateMirror
from pynello.utils import format_datetime

_logger = logging.getLogger(__name__)

_SET_TOKEN = "setToken"


class NelloAdapter:
    """One adapter instance.

    Usage::

        adapter = NelloAdapter(config, host)
        await adapter.start()
        ...
        await adapter.stop()

    Pass *api* to use an existing API client; otherwise a
    :class:`NelloClient` is opened on start and closed on stop.
    """

    def __init__(
        self,
        config: NelloConfig,
        host: StateHost,
        *,
        api: NelloApi | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._host = host
        self._session = session
        self._exit_stack = contextlib.AsyncExitStack()
        self._api = api
        self._ctx: AdapterContext | None = None
        self._reconciler: TimeWindowReconciler | None = None
        self._feed: EventFeed | None = None
        self._listener: WebhookListener | None = None

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    async def _require_context(self) -> AdapterContext:
        if self._ctx is None:
            if self._api is None:
                self._api = await self._exit_stack.enter_async_context(
                    NelloClient(self._config, session=self._session)
                )
            self._ctx = AdapterContext(
                config=self._config,
                host=self._host,
                api=self._api,
                mirror=StateMirror(self._host),
            )
            self._reconciler = TimeWindowReconciler(self._ctx)
            self._feed = EventFeed(self._ctx)
        return self._ctx

    @property
    def context(self) -> AdapterContext | None:
        return self._ctx

    @property
    def reconciler(self) -> TimeWindowReconciler | None:
        return self._reconciler

    @property
    def feed(self) -> EventFeed | None:
        return self._feed

    @property
    def listener(self) -> WebhookListener | None:
        return self._listener

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _check_config(self) -> None:
        config = self._config
        if not config.has_token:
            raise NelloConfigError("Token is missing! Please go to settings and generate a token first!")
        if not config.iobroker and config.uri and config.secure and not (config.cert_public and config.cert_private):
            raise NelloConfigError(
                "Usage of Secure Connection (HTTPS) has been selected, but either public certificate "
                "or private key (or both) is unselected! Please go to settings and select certificates!"
            )

    async def start(self) -> bool:
        """Fetch the locations and mirror them. Returns ``False`` on failure."""
        try:
            self._check_config()
        except NelloConfigError as exc:
            _logger.error("%s", exc)
            return False

        ctx = await self._require_context()
        try:
            locations = await ctx.api.get_locations()
        except NelloError as exc:
            _logger.error("Fetching locations failed: %s", exc)
            return False

        for location in locations:
            await self._setup_location(location)

        _logger.debug("Retrieved locations: %s", list(ctx.locations))
        return True

    async def stop(self) -> None:
        """Cancel periodic refreshes, stop the listener and close the client."""
        if self._reconciler is not None:
            await self._reconciler.stop()
        if self._listener is not None:
            await self._listener.stop()
            self._listener = None
        await self._exit_stack.aclose()
        _logger.info("Adapter stopped and unloaded.")

    async def _setup_location(self, location: Location) -> None:
        ctx = await self._require_context()
        assert self._reconciler is not None  # noqa: S101
        location_id = location.location_id
        _logger.info("Updating location: %s", location_id)

        record = LocationRecord(location=location)
        ctx.locations[location_id] = record
        address = location.address
        street_name = address.street_name

        try:
            await ctx.host.set_object(
                location_id, StateObject(type="device", common={"name": record.address})
            )
            await ctx.host.set_object(
                f"{location_id}.{ADDRESS}",
                StateObject(type="channel", common={"name": "Address data of the location"}),
            )
        except HostError as exc:
            _logger.error("Creating location %s failed: %s", location_id, exc)
            return

        for key, value in address.published_fields().items():
            await ctx.mirror.set(field_node(f"{location_id}.{ADDRESS}", ADDRESS, key), value)

        # time windows
        try:
            await ctx.host.set_object(
                f"{location_id}.{TIME_WINDOWS}",
                StateObject(type="channel", common={"name": "Time Windows of the location"}),
            )
        except HostError as exc:
            _logger.error("Creating time window channel of %s failed: %s", location_id, exc)
        else:
            await self._reconciler.refresh(location_id)
            self._reconciler.start_periodic(location_id)

        # events
        await self._attach_events(location_id)

        now = time.time()
        await ctx.mirror.set(
            NodeSpec(node=f"{location_id}.id", description=f"ID of location {street_name}", role="id"),
            location_id,
        )
        await ctx.mirror.set(
            NodeSpec(
                node=f"{location_id}.refreshedTimestamp",
                description=f"Last update (Timestamp) of location {street_name}",
                role="value",
            ),
            round(now),
        )
        await ctx.mirror.set(
            NodeSpec(
                node=f"{location_id}.refreshedDateTime",
                description=f"Last update (DateTime) of location {street_name}",
                role="text",
            ),
            format_datetime(now * 1000),
        )

        open_door_path = f"{location_id}.{OPEN_DOOR}"
        await ctx.mirror.set(
            button_node(
                open_door_path,
                f"Open door of location {street_name}",
                locationId=location_id,
                role="button.open.door",
            ),
            False,
        )
        await ctx.host.subscribe_states(open_door_path)

    async def _attach_events(self, location_id: str) -> None:
        ctx = await self._require_context()
        config = self._config
        url = config.webhook_url
        if not url:
            _logger.warning(
                "Can not attach event listener! Please specify ioBroker.cloud / ioBroker.iot URL "
                "or external DynDNS URL in adapter settings!"
            )
            return

        try:
            await ctx.host.set_object(
                f"{location_id}.{EVENTS}",
                StateObject(type="channel", common={"name": "Events of the location"}),
            )
        except HostError as exc:
            _logger.error("Creating event channel of %s failed: %s", location_id, exc)
            return

        try:
            attached = await ctx.api.attach_webhook(location_id, url)
        except NelloError as exc:
            _logger.warning("Failed to attach listener for webhooks (used url %s): %s", url, exc)
            return
        _logger.info("Listener attached to url %s.", attached)

        if config.iobroker:
            await ctx.host.subscribe_foreign_states(config.iot)
            _logger.debug("Subscribed to state %s.", config.iot)
            return

        await self._start_listener(attached)

    async def _start_listener(self, url: str) -> None:
        if self._listener is not None:
            return
        port = parse_port(url)
        if port is None:
            _logger.warning("No port given in webhook url %s; listener not started.", url)
            return
        try:
            listener = WebhookListener(
                port,
                self.handle_event,
                host=self._config.webhook_host,
                ssl_context=build_ssl_context(self._config),
            )
            await listener.start()
        except (NelloConfigError, OSError) as exc:
            _logger.error("Starting webhook listener on port %d failed: %s", port, exc)
            return
        self._listener = listener

    # ------------------------------------------------------------------
    # Host callbacks
    # ------------------------------------------------------------------

    async def handle_event(self, payload: Any) -> bool:
        """Record a webhook event."""
        await self._require_context()
        assert self._feed is not None  # noqa: S101
        return await self._feed.append(payload)

    async def on_state_change(self, path: str, state: StateValue | None) -> None:
        """Dispatch a subscribed state write."""
        _logger.debug("State of %s has changed %s.", path, state)
        if state is None:
            state = StateValue(val=None, ack=True)
        await self._require_context()
        assert self._reconciler is not None  # noqa: S101

        if path == self._config.iot:
            if state.val:
                await self._handle_relayed_event(state.val)
            return

        if path.endswith(f".{OPEN_DOOR}"):
            if not state.ack:
                await self._open_door(path)
        elif path.endswith(f".{TIME_WINDOWS}.{CREATE_TIME_WINDOW}"):
            await self._reconciler.create(path, state)
        elif path.endswith(f".{DELETE_ALL_TIME_WINDOWS}"):
            await self._reconciler.delete_all(path, state)
        elif path.endswith(f".{DELETE_TIME_WINDOW}"):
            await self._reconciler.delete(path, state)

    async def _handle_relayed_event(self, value: Any) -> None:
        try:
            payload = json.loads(value) if isinstance(value, (str, bytes)) else value
        except json.JSONDecodeError:
            _logger.warning("Ignoring relayed event with invalid JSON: %s", redact_for_log(value))
            return
        await self.handle_event(payload)

    async def _open_door(self, path: str) -> None:
        ctx = await self._require_context()
        try:
            obj = await ctx.host.get_object(path)
        except HostError as exc:
            _logger.error("Lookup of %s failed: %s", path, exc)
            return
        location_id = obj.common.get("locationId") if obj is not None else None
        if not location_id:
            _logger.warning("Control node %s carries no location.", path)
            return

        _logger.info("Triggered to open door of location %s.", ctx.describe(location_id))
        try:
            await ctx.api.open_door(location_id)
        except NelloError as exc:
            _logger.error("Opening door of %s failed: %s", location_id, exc)

    async def on_message(self, message: Mapping[str, Any]) -> None:
        """Handle a message sent to the adapter (e.g. from its settings page)."""
        _logger.debug("Message: %s", redact_for_log(message))
        command = message.get("command")
        if command != _SET_TOKEN:
            _logger.debug("Ignoring unknown command %s.", command)
            return

        body = message.get("message")
        body = body if isinstance(body, Mapping) else {}
        ctx = await self._require_context()
        try:
            token = await ctx.api.request_token(str(body.get("clientId", "")), str(body.get("clientSecret", "")))
        except NelloError as exc:
            _logger.warning("Failed generating token (%s)!", exc)
            reply: dict[str, Any] = {"result": False, "error": str(exc)}
        else:
            _logger.debug("Generated token using Client ID and Client Secret.")
            reply = token.as_message()

        await self._reply(message, reply)

    async def _reply(self, message: Mapping[str, Any], reply: Any) -> None:
        receiver = message.get("from")
        if not receiver:
            return
        body = reply if isinstance(reply, Mapping) else {"message": reply}
        try:
            await self._host.send_to(str(receiver), str(message.get("command", "")), body, message.get("callback"))
        except HostError as exc:
            _logger.error("Replying to %s failed: %s", receiver, exc)
