"""Interface of the smart-home host's state tree.

The host stores a hierarchy of dotted paths. Every path holds an
*object* (type plus ``common``/``native`` metadata) and, for objects of
type ``state``, a *value* (:class:`StateValue`). The adapter only talks to
the host through :class:`StateHost`.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

ObjectType = Literal["device", "channel", "state"]


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class StateObject(BaseModel):
    """An object of the state tree."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = ""
    type: ObjectType = "state"
    common: dict[str, Any] = Field(default_factory=dict)
    native: dict[str, Any] = Field(default_factory=dict)


class StateValue(BaseModel):
    """Value of a state together with its timestamp and acknowledge flag.

    ``ack`` is ``True`` for values written by the adapter and ``False``
    for commands written by users or other adapters.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    val: Any = None
    ts: int = Field(default_factory=now_ms)
    ack: bool = False


class StateHost(Protocol):
    """Object/state persistence and pub/sub primitives of the host runtime.

    Implementations raise :class:`pynello.exceptions.HostError` when a
    lookup or write fails.
    """

    async def get_object(self, path: str) -> StateObject | None: ...

    async def set_object(self, path: str, obj: StateObject) -> None: ...

    async def del_object(self, path: str, *, recursive: bool = False) -> None: ...

    async def get_state(self, path: str) -> StateValue | None: ...

    async def set_state(self, path: str, state: StateValue) -> None: ...

    async def get_states_of(self, device: str, channel: str) -> list[StateObject]: ...

    async def subscribe_states(self, path: str) -> None: ...

    async def subscribe_foreign_states(self, path: str) -> None: ...

    async def send_to(self, receiver: str, command: str, message: Mapping[str, Any], callback: Any = None) -> None: ...
