"""HTTP transport for the nello public API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pynello._constants import USER_AGENT
from pynello._redact import redact_for_log
from pynello.config import NelloConfig
from pynello.exceptions import NelloTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`JsonTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        payload: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
        base_url: str | None = None,
        authenticated: bool = True,
    ) -> tuple[int, Any]:
        ...


class JsonTransport:
    """aiohttp transport that sends bearer-authenticated JSON requests."""

    def __init__(self, config: NelloConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if authenticated and self._config.has_token:
            headers["authorization"] = f"{self._config.token_type} {self._config.resolved_access_token}"
        return headers

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        payload: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
        base_url: str | None = None,
        authenticated: bool = True,
    ) -> tuple[int, Any]:
        """Send a request and return ``(status, decoded JSON body)``.

        Error statuses are returned rather than raised when the body is
        JSON, so that endpoint modules can surface the API's own message.
        """
        url = f"{base_url if base_url is not None else self._config.base_url}{endpoint}"
        _logger.debug("%s %s payload=%s", method, url, redact_for_log(payload if payload is not None else form))

        try:
            async with self._http.request(
                method,
                url,
                json=dict(payload) if payload is not None else None,
                data=dict(form) if form is not None else None,
                headers=self._headers(authenticated),
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise NelloTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise NelloTransportError(
                f"Request to {endpoint} timed out",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            if status >= 400:
                raise NelloTransportError(
                    f"HTTP {status} from {endpoint}",
                    status_code=status,
                    endpoint=endpoint,
                )
            return status, {}

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise NelloTransportError(
                f"Invalid JSON from {endpoint} (HTTP {status}): {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        return status, body
