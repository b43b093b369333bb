"""OAuth token endpoint (client-credentials grant)."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pynello._redact import redact_for_log
from pynello._transport import Transport
from pynello.config import NelloConfig
from pynello.exceptions import NelloApiError, NelloAuthenticationError
from pynello.models.token import AuthToken

_logger = logging.getLogger(__name__)


async def request_token(
    config: NelloConfig,
    transport: Transport,
    client_id: str,
    client_secret: str,
) -> AuthToken:
    """Exchange client credentials for an access token.

    Raises
    ------
    NelloAuthenticationError
        If the authorization server rejects the credentials.
    """
    status, body = await transport.request_json(
        "POST",
        "",
        form={
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        },
        base_url=config.auth_url,
        authenticated=False,
    )
    _logger.debug("Token response status=%s body=%s", status, redact_for_log(body))

    if not isinstance(body, dict) or status >= 400 or "access_token" not in body:
        error = None
        if isinstance(body, dict):
            error = body.get("error_description") or body.get("error")
        raise NelloAuthenticationError(
            f"Token request failed: status={status} error={error or 'unknown error'}",
            status=status,
            endpoint=config.auth_url,
        )

    try:
        return AuthToken.model_validate({**body, "raw": body})
    except ValidationError as exc:
        raise NelloApiError(f"Invalid token response: {exc}", status=status, endpoint=config.auth_url) from exc
