"""Time-window reconciliation.

Each refresh cycle mirrors the API's current time windows of a location
into ``<location>.timeWindows``:

1. *Purge*: delete every state below ``<location>.timeWindows`` and forget
   the in-memory windows.
2. *Fetch & publish*: fetch the windows, mirror every field, and publish
   the index plus the create / delete / delete-all control nodes.

Purge is always awaited before the fetch starts, so a slow purge can never
remove nodes a fast fetch has just written.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from pynello.adapter.context import AdapterContext
from pynello.adapter.nodes import (
    CREATE_TIME_WINDOW,
    DELETE_ALL_TIME_WINDOWS,
    DELETE_TIME_WINDOW,
    INDEXED_TIME_WINDOWS,
    TIME_WINDOWS,
    button_node,
    field_node,
    time_windows_path,
)
from pynello.exceptions import HostError, NelloError, TimeWindowValidationError
from pynello.models.time_window import TimeWindowRequest
from pynello.state.host import StateObject, StateValue
from pynello.state.mirror import NodeSpec

_logger = logging.getLogger(__name__)


class TimeWindowReconciler:
    """Keeps ``<location>.timeWindows`` in sync with the API."""

    def __init__(self, ctx: AdapterContext) -> None:
        self._ctx = ctx
        self._periodic: dict[str, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    async def purge(self, location_id: str) -> None:
        """Delete all mirrored time-window states of a location."""
        host = self._ctx.host
        try:
            objects = await host.get_states_of(location_id, TIME_WINDOWS)
        except HostError as exc:
            _logger.error("Listing time windows of %s failed: %s", location_id, exc)
            objects = []

        for obj in objects:
            try:
                await host.del_object(obj.id)
            except HostError as exc:
                _logger.error("Deleting %s failed: %s", obj.id, exc)

        self._ctx.record(location_id).time_windows.clear()

    async def fetch_and_publish(self, location_id: str) -> bool:
        """Fetch the location's time windows and mirror them.

        Returns ``False`` when the API call failed; nothing is published then.
        """
        ctx = self._ctx
        try:
            windows = await ctx.api.get_time_windows(location_id)
        except NelloError as exc:
            _logger.error("Fetching time windows of %s failed: %s", ctx.describe(location_id), exc)
            return False

        record = ctx.record(location_id)
        record.time_windows.clear()
        base = time_windows_path(location_id)
        _logger.info("Updating time windows of location %s.", record.address or location_id)

        for window in windows:
            window_path = f"{base}.{window.id}"
            await ctx.mirror.set(NodeSpec(node=window_path, description=f"Time Window: {window.name}"), "")
            record.time_windows[window.id] = window

            for key, value in window.published_fields().items():
                await ctx.mirror.set(field_node(window_path, TIME_WINDOWS, key), value)

            delete_path = f"{window_path}.{DELETE_TIME_WINDOW}"
            await ctx.mirror.set(
                button_node(
                    delete_path,
                    f"Delete the time window {window.id} of location {record.address}",
                    locationId=location_id,
                    timeWindowId=window.id,
                    role="button.delete",
                ),
                False,
            )
            await ctx.host.subscribe_states(delete_path)

        await ctx.mirror.set(
            NodeSpec(node=f"{base}.{INDEXED_TIME_WINDOWS}", description="Index of all time windows", role="text"),
            ",".join(window.id for window in windows),
        )

        create_path = f"{base}.{CREATE_TIME_WINDOW}"
        await ctx.mirror.ensure(
            NodeSpec(
                node=create_path,
                description=f"Creating a time window for location {record.address}",
                common={"locationId": location_id, "role": "json", "type": "string", "write": True},
            )
        )
        await ctx.host.subscribe_states(create_path)

        delete_all_path = f"{base}.{DELETE_ALL_TIME_WINDOWS}"
        await ctx.mirror.set(
            button_node(
                delete_all_path,
                f"Delete all time windows of location {record.address}",
                locationId=location_id,
                role="button.delete",
            ),
            False,
        )
        await ctx.host.subscribe_states(delete_all_path)
        return True

    async def refresh(self, location_id: str) -> bool:
        """Run a full purge + fetch & publish cycle."""
        await self.purge(location_id)
        return await self.fetch_and_publish(location_id)

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    def start_periodic(self, location_id: str) -> bool:
        """Refresh the location every ``config.refresh`` seconds.

        Returns ``False`` when periodic refresh is disabled.
        """
        interval = self._ctx.config.effective_refresh
        if interval is None:
            return False
        existing = self._periodic.get(location_id)
        if existing is not None and not existing.done():
            return True
        self._periodic[location_id] = asyncio.create_task(
            self._run_periodic(location_id, interval),
            name=f"nello-refresh-{location_id}",
        )
        return True

    async def _run_periodic(self, location_id: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh(location_id)
            except Exception:
                _logger.error("Periodic refresh of %s failed", location_id, exc_info=True)

    async def stop(self) -> None:
        """Cancel all periodic refresh tasks."""
        tasks = list(self._periodic.values())
        self._periodic.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _control_object(self, path: str) -> StateObject | None:
        try:
            obj = await self._ctx.host.get_object(path)
        except HostError as exc:
            _logger.error("Lookup of control node %s failed: %s", path, exc)
            return None
        if obj is None or not obj.common.get("locationId"):
            _logger.warning("Control node %s carries no location.", path)
            return None
        return obj

    async def create(self, path: str, state: StateValue) -> None:
        """Create a time window from the JSON written to ``createTimeWindow``.

        The control node is reset to ``None`` afterwards, whatever the outcome.
        """
        if state.ack or state.val is None:
            return

        try:
            obj = await self._control_object(path)
            if obj is None:
                return
            location_id = str(obj.common["locationId"])

            try:
                request = TimeWindowRequest.from_json(state.val)
            except TimeWindowValidationError as exc:
                _logger.error("%s", exc)
                return

            _logger.info("Triggered to create time window of location %s.", self._ctx.describe(location_id))
            try:
                created = await self._ctx.api.create_time_window(location_id, request)
            except NelloError as exc:
                _logger.error("Creation for time window failed: %s", exc)
                return

            _logger.info("Time window with id %s was created.", created.id)
            await self.fetch_and_publish(location_id)
        finally:
            await self._ctx.mirror.write(path, None)

    async def delete(self, path: str, state: StateValue) -> None:
        """Delete the time window whose ``deleteTimeWindow`` node was written."""
        if state.ack:
            return
        obj = await self._control_object(path)
        if obj is None:
            return
        location_id = str(obj.common["locationId"])
        time_window_id = str(obj.common.get("timeWindowId", ""))

        _logger.info(
            "Triggered to delete time window (%s) of location %s.",
            time_window_id,
            self._ctx.describe(location_id),
        )
        try:
            await self._ctx.api.delete_time_window(location_id, time_window_id)
        except NelloError as exc:
            _logger.error("Deleting time window failed: %s", exc)
            return

        _logger.info("Time window with id %s was deleted.", time_window_id)
        try:
            await self._ctx.host.del_object(f"{time_windows_path(location_id)}.{time_window_id}", recursive=True)
        except HostError as exc:
            _logger.error("Removing time window %s from the tree failed: %s", time_window_id, exc)
        self._ctx.record(location_id).time_windows.pop(time_window_id, None)
        await self.fetch_and_publish(location_id)

    async def _delete_quietly(self, location_id: str, time_window_id: str) -> bool:
        try:
            await self._ctx.api.delete_time_window(location_id, time_window_id)
        except NelloError as exc:
            _logger.error("Deleting time window %s failed: %s", time_window_id, exc)
            return False
        _logger.info("Time window with id %s was deleted.", time_window_id)
        return True

    async def delete_all(self, path: str, state: StateValue) -> None:
        """Delete every known time window of the location concurrently.

        Once all deletions have completed, the location is refreshed exactly
        once, also when there was nothing to delete.
        """
        if state.ack:
            return
        obj = await self._control_object(path)
        if obj is None:
            return
        location_id = str(obj.common["locationId"])
        time_window_ids = list(self._ctx.record(location_id).time_windows)

        _logger.info("Triggered to delete all time windows of location %s.", self._ctx.describe(location_id))
        results = await asyncio.gather(*(self._delete_quietly(location_id, tw_id) for tw_id in time_window_ids))
        if all(results):
            _logger.info("All time windows have been deleted.")
        else:
            _logger.warning(
                "%d of %d time windows could not be deleted.",
                results.count(False),
                len(results),
            )
        await self.refresh(location_id)
