"""Webhook endpoints.

Endpoints:
  - PUT    /locations/{location_id}/webhook/  (attach)
  - DELETE /locations/{location_id}/webhook/  (detach)
"""

from __future__ import annotations

from collections.abc import Iterable

from pynello._api._common import call_api
from pynello._constants import WEBHOOK_ACTIONS
from pynello._transport import Transport


def _endpoint(location_id: str) -> str:
    return f"/locations/{location_id}/webhook/"


async def attach_webhook(
    transport: Transport,
    location_id: str,
    url: str,
    *,
    actions: Iterable[str] = WEBHOOK_ACTIONS,
) -> str:
    """Register *url* to receive the location's events. Returns the URL."""
    await call_api(
        transport,
        "PUT",
        _endpoint(location_id),
        payload={"url": url, "actions": list(actions)},
    )
    return url


async def detach_webhook(transport: Transport, location_id: str) -> None:
    await call_api(transport, "DELETE", _endpoint(location_id))
