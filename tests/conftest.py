"""Shared fakes for pynello tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from pynello.adapter.context import AdapterContext
from pynello.config import NelloConfig
from pynello.exceptions import NelloApiError, NelloAuthenticationError
from pynello.models.location import Location
from pynello.models.time_window import TimeWindow, TimeWindowRequest
from pynello.models.token import AuthToken
from pynello.state.memory import MemoryStateTree
from pynello.state.mirror import StateMirror

LOCATION_ID = "loc-1"

ICAL = (
    "BEGIN:VCALENDAR\r\n"
    "BEGIN:VEVENT\r\n"
    "DTSTART;TZID=Europe/Berlin:20180101T080000\r\n"
    "DTEND;TZID=Europe/Berlin:20180101T170000\r\n"
    "RRULE:FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR\r\n"
    "SUMMARY:Cleaning\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


def window(window_id: str, name: str | None = None) -> dict[str, Any]:
    return {
        "id": window_id,
        "name": name or f"Window {window_id}",
        "enabled": True,
        "state": 1,
        "image": None,
        "ical": ICAL,
    }


@dataclass
class FakeNelloBackend:
    """In-memory stand-in for the public API with call recording."""

    locations: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "location_id": LOCATION_ID,
                "address": {
                    "street": " Main Street ",
                    "number": "12",
                    "zip": "10115",
                    "city": "Berlin",
                    "country": "Germany",
                },
            }
        ]
    )
    windows: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)
    failing_deletes: set[str] = field(default_factory=set)
    delete_delays: dict[str, float] = field(default_factory=dict)
    webhook_failing: bool = False
    _next_id: int = 100

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing:
            raise NelloApiError(f"{operation} failed: status=500 message=boom", status=500, endpoint=operation)

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def get_locations(self) -> list[Location]:
        self.calls.append(("get_locations",))
        self._maybe_fail("get_locations")
        return [Location.model_validate(item) for item in self.locations]

    async def get_time_windows(self, location_id: str) -> list[TimeWindow]:
        self.calls.append(("get_time_windows", location_id))
        self._maybe_fail("get_time_windows")
        return [TimeWindow.from_api(dict(item)) for item in self.windows.get(location_id, [])]

    async def create_time_window(self, location_id: str, request: TimeWindowRequest) -> TimeWindow:
        self.calls.append(("create_time_window", location_id, request.name))
        self._maybe_fail("create_time_window")
        self._next_id += 1
        item = {"id": f"tw-{self._next_id}", "name": request.name, "enabled": True, "state": 1, "ical": request.ical}
        self.windows.setdefault(location_id, []).append(item)
        return TimeWindow.from_api(dict(item))

    async def delete_time_window(self, location_id: str, time_window_id: str) -> None:
        self.calls.append(("delete_time_window", location_id, time_window_id))
        delay = self.delete_delays.get(time_window_id)
        if delay:
            await asyncio.sleep(delay)
        self._maybe_fail("delete_time_window")
        if time_window_id in self.failing_deletes:
            raise NelloApiError(f"delete {time_window_id} failed", status=404, endpoint="delete")
        self.windows[location_id] = [w for w in self.windows.get(location_id, []) if w["id"] != time_window_id]

    async def open_door(self, location_id: str) -> None:
        self.calls.append(("open_door", location_id))
        self._maybe_fail("open_door")

    async def attach_webhook(self, location_id: str, url: str) -> str:
        self.calls.append(("attach_webhook", location_id, url))
        if self.webhook_failing:
            raise NelloApiError("webhook failed", status=400, endpoint="webhook")
        return url

    async def request_token(self, client_id: str, client_secret: str) -> AuthToken:
        self.calls.append(("request_token", client_id))
        if client_secret != "good-secret":
            raise NelloAuthenticationError("Token request failed: status=401 error=invalid_client", status=401)
        return AuthToken(access_token="new-token", token_type="Bearer", expires_in=3600, raw={})


@pytest.fixture
def backend() -> FakeNelloBackend:
    return FakeNelloBackend()


@pytest.fixture
def tree() -> MemoryStateTree:
    return MemoryStateTree()


@pytest.fixture
def config() -> NelloConfig:
    return NelloConfig(access_token="token-1")


@pytest.fixture
def ctx(config: NelloConfig, tree: MemoryStateTree, backend: FakeNelloBackend) -> AdapterContext:
    context = AdapterContext(config=config, host=tree, api=backend, mirror=StateMirror(tree))
    context.record(LOCATION_ID)
    return context
