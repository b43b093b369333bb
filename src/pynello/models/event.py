"""Webhook event model."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pynello.models._base import safe_int, safe_str


def _now_seconds() -> int:
    return round(time.time())


class WebhookEventData(BaseModel):
    """``data`` part of a webhook event; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    location_id: str
    timestamp: int = Field(default_factory=_now_seconds)

    @field_validator("location_id", mode="before")
    @classmethod
    def _coerce_location(cls, value: Any) -> str:
        text = safe_str(value)
        if not text:
            raise ValueError("location_id must be non-empty")
        return text

    @field_validator("timestamp", mode="before")
    @classmethod
    def _default_timestamp(cls, value: Any) -> int:
        parsed = safe_int(value)
        return _now_seconds() if parsed is None else parsed


class WebhookEvent(BaseModel):
    """Event delivered by the webhook (door opened, bell rung, ...)."""

    model_config = ConfigDict(extra="allow")

    action: str
    data: WebhookEventData

    @field_validator("action", mode="before")
    @classmethod
    def _coerce_action(cls, value: Any) -> str:
        if value is None:
            raise ValueError("action is required")
        return safe_str(value)

    @classmethod
    def from_payload(cls, payload: Any) -> WebhookEvent | None:
        """Validate *payload*; ``None`` when ``action`` or ``data`` is missing."""
        if not isinstance(payload, Mapping):
            return None
        if payload.get("action") is None or payload.get("data") is None:
            return None
        try:
            return cls.model_validate(dict(payload))
        except ValidationError:
            return None

    @property
    def location_id(self) -> str:
        return self.data.location_id

    @property
    def timestamp(self) -> int:
        return self.data.timestamp

    def to_feed_entry(self) -> dict[str, Any]:
        return self.model_dump()
