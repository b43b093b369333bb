"""Door endpoint.

Endpoints:
  - PUT /locations/{location_id}/open/
"""

from __future__ import annotations

from pynello._api._common import call_api
from pynello._transport import Transport


async def open_door(transport: Transport, location_id: str) -> None:
    """Open the door of a location."""
    await call_api(transport, "PUT", f"/locations/{location_id}/open/")
