"""Data models for nello API payloads."""

from pynello.models._base import NelloBaseModel
from pynello.models.event import WebhookEvent, WebhookEventData
from pynello.models.location import Address, Location
from pynello.models.time_window import TimeWindow, TimeWindowRequest
from pynello.models.token import AuthToken

__all__ = [
    "Address",
    "AuthToken",
    "Location",
    "NelloBaseModel",
    "TimeWindow",
    "TimeWindowRequest",
    "WebhookEvent",
    "WebhookEventData",
]
