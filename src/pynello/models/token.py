"""OAuth token model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthToken(BaseModel):
    """Token returned by the client-credentials grant.

    Parameters
    ----------
    access_token : str
        Bearer token for the public API.
    token_type : str
        Token type, usually ``"Bearer"``.
    expires_in : int or None
        Lifetime in seconds, when the server reports one.
    scope : str or None
        Granted scope.
    raw : dict
        Full token response.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    def as_message(self) -> dict[str, Any]:
        """Token fields in the shape the settings page expects."""
        return {
            "token_type": self.token_type,
            "access_token": self.access_token,
            "expires_in": self.expires_in,
            "scope": self.scope,
        }
