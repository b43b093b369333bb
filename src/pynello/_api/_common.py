"""Shared helpers for nello API endpoint modules.

Every public API response is an envelope::

    {"result": {"success": true, "status": 200, "message": "OK"}, "data": ...}

It is internal to pynello and may change at any time.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pynello._transport import Transport
from pynello.exceptions import NelloApiError, NelloAuthenticationError

_AUTH_STATUSES: frozenset[int] = frozenset({401, 403})


def unwrap_result(*, endpoint: str, status: int, body: Any) -> Any:
    """Return the ``data`` part of an envelope or raise for a failed result."""
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, dict):
        raise NelloApiError(
            f"{endpoint} failed: unexpected response (HTTP {status})",
            status=status,
            endpoint=endpoint,
        )

    if result.get("success") is not True:
        reported = result.get("status")
        api_status = reported if isinstance(reported, int) else status
        message = str(result.get("message") or "unknown error")
        error_cls = NelloAuthenticationError if api_status in _AUTH_STATUSES else NelloApiError
        raise error_cls(
            f"{endpoint} failed: status={api_status} message={message}",
            status=api_status,
            endpoint=endpoint,
        )

    return body.get("data")


async def call_api(
    transport: Transport,
    method: str,
    endpoint: str,
    *,
    payload: Mapping[str, Any] | None = None,
) -> Any:
    """Send an authenticated request and return the envelope's ``data``."""
    status, body = await transport.request_json(method, endpoint, payload=payload)
    return unwrap_result(endpoint=endpoint, status=status, body=body)
