"""Adapter configuration for pynello."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pynello._constants import (
    AUTH_URL,
    BASE_URL,
    DEFAULT_EVENTS_MAX_COUNT,
    DEFAULT_IOT_STATE,
    MIN_REFRESH_SECONDS,
)
from pynello.utils import decode


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class NelloConfig:
    """Adapter configuration.

    Parameters
    ----------
    token_type : str
        OAuth token type sent in the ``Authorization`` header.
    access_token : str
        OAuth access token. Generate one with the ``setToken`` message.
    secret : str or None
        XOR key the host used to store ``access_token`` encoded. When set,
        :attr:`resolved_access_token` decodes the token before use.
    refresh : float or None
        Seconds between time-window refresh cycles. Only honoured when
        greater than 10.
    events_max_count : int
        Maximum number of events kept in a location's event feed.
    iot : str
        Foreign state carrying webhook events relayed by the cloud adapter.
    iobroker : str
        Cloud webhook URL. Preferred over ``uri`` when both are set.
    uri : str
        Externally reachable (DynDNS) webhook URL served by this adapter.
    secure : bool
        Serve the DynDNS webhook listener over HTTPS.
    cert_public, cert_private, cert_chained : str or None
        Certificate, private key and CA chain file paths for ``secure``.
    self_signed : bool
        Whether the certificate is self-signed.
    base_url : str
        Public API base URL.
    auth_url : str
        OAuth token endpoint.
    request_timeout : float
        Total timeout in seconds for a single API request.
    webhook_host : str
        Interface the DynDNS webhook listener binds to.
    """

    token_type: str = "Bearer"
    access_token: str = ""
    secret: str | None = None
    refresh: float | None = None
    events_max_count: int = DEFAULT_EVENTS_MAX_COUNT
    iot: str = DEFAULT_IOT_STATE
    iobroker: str = ""
    uri: str = ""
    secure: bool = False
    cert_public: str | None = None
    cert_private: str | None = None
    cert_chained: str | None = None
    self_signed: bool = True
    base_url: str = BASE_URL
    auth_url: str = AUTH_URL
    request_timeout: float = 30.0
    webhook_host: str = "0.0.0.0"  # noqa: S104

    def __post_init__(self) -> None:
        # Unset values from the host's settings page arrive as 0 / "".
        if not self.events_max_count:
            object.__setattr__(self, "events_max_count", DEFAULT_EVENTS_MAX_COUNT)
        if not self.iot:
            object.__setattr__(self, "iot", DEFAULT_IOT_STATE)

    @property
    def has_token(self) -> bool:
        return bool(self.token_type and self.access_token)

    @property
    def resolved_access_token(self) -> str:
        """Access token in clear text."""
        if self.secret and self.access_token:
            return decode(self.secret, self.access_token)
        return self.access_token

    @property
    def effective_refresh(self) -> float | None:
        """Refresh interval in seconds, or ``None`` when periodic refresh is off."""
        if self.refresh is None or self.refresh <= MIN_REFRESH_SECONDS:
            return None
        return float(self.refresh)

    @property
    def webhook_url(self) -> str:
        """URL handed to the API when attaching the webhook."""
        return self.iobroker or self.uri

    @classmethod
    def from_env(cls, **overrides: Any) -> NelloConfig:
        """Create configuration from environment variables.

        Reads ``NELLO_ACCESS_TOKEN`` and the optional ``NELLO_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        NelloConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "NELLO_TOKEN_TYPE": "token_type",
            "NELLO_ACCESS_TOKEN": "access_token",
            "NELLO_SECRET": "secret",
            "NELLO_IOT": "iot",
            "NELLO_IOBROKER": "iobroker",
            "NELLO_URI": "uri",
            "NELLO_CERT_PUBLIC": "cert_public",
            "NELLO_CERT_PRIVATE": "cert_private",
            "NELLO_CERT_CHAINED": "cert_chained",
            "NELLO_BASE_URL": "base_url",
            "NELLO_AUTH_URL": "auth_url",
            "NELLO_WEBHOOK_HOST": "webhook_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        refresh_env = env.get("NELLO_REFRESH")
        if refresh_env and "refresh" not in overrides:
            config_kwargs["refresh"] = float(refresh_env)

        max_count_env = env.get("NELLO_EVENTS_MAX_COUNT")
        if max_count_env and "events_max_count" not in overrides:
            config_kwargs["events_max_count"] = int(max_count_env)

        timeout_env = env.get("NELLO_REQUEST_TIMEOUT")
        if timeout_env and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        if "secure" not in overrides:
            config_kwargs["secure"] = _env_bool(env.get("NELLO_SECURE"), False)
        if "self_signed" not in overrides:
            config_kwargs["self_signed"] = _env_bool(env.get("NELLO_SELF_SIGNED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
