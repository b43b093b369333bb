"""Time window endpoints.

Endpoints:
  - GET    /locations/{location_id}/tw/
  - POST   /locations/{location_id}/tw/
  - DELETE /locations/{location_id}/tw/{time_window_id}/
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pynello._api._common import call_api
from pynello._transport import Transport
from pynello.exceptions import NelloApiError
from pynello.models.time_window import TimeWindow, TimeWindowRequest

_logger = logging.getLogger(__name__)


def _collection(location_id: str) -> str:
    return f"/locations/{location_id}/tw/"


def _parse(endpoint: str, item: Any) -> TimeWindow:
    if not isinstance(item, dict):
        raise NelloApiError(f"{endpoint} returned a non-object time window", endpoint=endpoint)
    try:
        return TimeWindow.from_api(item)
    except ValidationError as exc:
        raise NelloApiError(f"{endpoint} returned an invalid time window: {exc}", endpoint=endpoint) from exc


async def fetch_time_windows(transport: Transport, location_id: str) -> list[TimeWindow]:
    """Fetch the time windows of a location, in API order."""
    endpoint = _collection(location_id)
    data = await call_api(transport, "GET", endpoint)
    items = data if isinstance(data, list) else []
    return [_parse(endpoint, item) for item in items]


async def create_time_window(
    transport: Transport,
    location_id: str,
    request: TimeWindowRequest,
) -> TimeWindow:
    """Create a time window and return it as stored by the API."""
    endpoint = _collection(location_id)
    data = await call_api(transport, "POST", endpoint, payload=request.to_payload())
    if not isinstance(data, dict):
        data = {}
    # The API echoes only the id; fill in what was sent.
    merged = {"name": request.name, "ical": request.ical, **data}
    created = _parse(endpoint, merged)
    _logger.debug("Created time window %s for location=%s", created.id, location_id)
    return created


async def delete_time_window(transport: Transport, location_id: str, time_window_id: str) -> None:
    """Delete a single time window."""
    endpoint = f"{_collection(location_id)}{time_window_id}/"
    await call_api(transport, "DELETE", endpoint)
