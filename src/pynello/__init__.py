"""pynello - nello smart-lock integration for smart-home state trees."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynello")
except PackageNotFoundError:
    __version__ = "0+local"

from pynello.adapter import EventFeed, NelloAdapter, TimeWindowReconciler
from pynello.client import NelloApi, NelloClient
from pynello.config import NelloConfig
from pynello.exceptions import (
    HostError,
    NelloApiError,
    NelloAuthenticationError,
    NelloConfigError,
    NelloError,
    NelloTransportError,
    TimeWindowValidationError,
)
from pynello.models import (
    Address,
    AuthToken,
    Location,
    TimeWindow,
    TimeWindowRequest,
    WebhookEvent,
)
from pynello.state import MemoryStateTree, NodeSpec, StateHost, StateMirror, StateObject, StateValue

__all__ = [
    "__version__",
    "Address",
    "AuthToken",
    "EventFeed",
    "HostError",
    "Location",
    "MemoryStateTree",
    "NelloAdapter",
    "NelloApi",
    "NelloApiError",
    "NelloAuthenticationError",
    "NelloClient",
    "NelloConfig",
    "NelloConfigError",
    "NelloError",
    "NelloTransportError",
    "NodeSpec",
    "StateHost",
    "StateMirror",
    "StateObject",
    "StateValue",
    "TimeWindow",
    "TimeWindowReconciler",
    "TimeWindowRequest",
    "TimeWindowValidationError",
    "WebhookEvent",
]
