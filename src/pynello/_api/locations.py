"""Location endpoints.

Endpoints:
  - GET /locations/  (all locations of the account)
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pynello._api._common import call_api
from pynello._transport import Transport
from pynello.exceptions import NelloApiError
from pynello.models.location import Location

_logger = logging.getLogger(__name__)

_ENDPOINT = "/locations/"


async def fetch_locations(transport: Transport) -> list[Location]:
    """Fetch all locations associated with the token."""
    data = await call_api(transport, "GET", _ENDPOINT)
    items = data if isinstance(data, list) else []
    try:
        locations = [Location.model_validate(item) for item in items]
    except ValidationError as exc:
        raise NelloApiError(f"{_ENDPOINT} returned an invalid location: {exc}", endpoint=_ENDPOINT) from exc
    _logger.debug("Fetched %d location(s)", len(locations))
    return locations
