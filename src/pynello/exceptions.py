"""Custom exception hierarchy for pynello."""

from __future__ import annotations


class NelloError(Exception):
    """Base exception for all pynello errors."""


class NelloConfigError(NelloError):
    """Invalid or missing configuration."""


class NelloTransportError(NelloError):
    """HTTP-level failure (network, unexpected status, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class NelloApiError(NelloError):
    """API answered with an unsuccessful result envelope."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status = status
        self.endpoint = endpoint
        super().__init__(message)


class NelloAuthenticationError(NelloApiError):
    """Token rejected or client credentials invalid."""


class TimeWindowValidationError(NelloError, ValueError):
    """Payload for a new time window is malformed.

    The message is meant to be shown to the user as-is.
    """


class HostError(NelloError):
    """The state-tree host failed to read or write an object or state."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
