"""Adapter layer.

Mirrors locations and time windows into the host state tree, executes the
commands written to control nodes, and records webhook events.
"""

from pynello.adapter.context import AdapterContext, LocationRecord
from pynello.adapter.core import NelloAdapter
from pynello.adapter.events import EventFeed
from pynello.adapter.time_windows import TimeWindowReconciler
from pynello.adapter.webhook import WebhookListener

__all__ = [
    "AdapterContext",
    "EventFeed",
    "LocationRecord",
    "NelloAdapter",
    "TimeWindowReconciler",
    "WebhookListener",
]
