"""In-memory :class:`~pynello.state.host.StateHost`.

Useful for running the adapter without a host runtime and as the host
double in tests. Writes to subscribed paths are delivered to the
registered listener synchronously (awaited inside ``set_state``).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pynello.state.host import StateObject, StateValue

_logger = logging.getLogger(__name__)

StateListener = Callable[[str, StateValue | None], Awaitable[None]]


@dataclass(frozen=True)
class SentMessage:
    receiver: str
    command: str
    message: dict[str, Any]
    callback: Any = None


class MemoryStateTree:
    """Dictionary-backed state tree."""

    def __init__(self, listener: StateListener | None = None) -> None:
        self.objects: dict[str, StateObject] = {}
        self.states: dict[str, StateValue] = {}
        self.subscriptions: set[str] = set()
        self.sent: list[SentMessage] = []
        self.listener = listener

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    async def get_object(self, path: str) -> StateObject | None:
        return self.objects.get(path)

    async def set_object(self, path: str, obj: StateObject) -> None:
        self.objects[path] = obj.model_copy(update={"id": path})

    async def del_object(self, path: str, *, recursive: bool = False) -> None:
        doomed = [path]
        if recursive:
            prefix = f"{path}."
            doomed.extend(key for key in self.objects if key.startswith(prefix))
            doomed.extend(key for key in self.states if key.startswith(prefix) and key not in doomed)
        for key in doomed:
            self.objects.pop(key, None)
            self.states.pop(key, None)

    async def get_states_of(self, device: str, channel: str) -> list[StateObject]:
        prefix = f"{device}.{channel}."
        return [obj for key, obj in self.objects.items() if key.startswith(prefix) and obj.type == "state"]

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def get_state(self, path: str) -> StateValue | None:
        return self.states.get(path)

    async def set_state(self, path: str, state: StateValue) -> None:
        self.states[path] = state
        if path in self.subscriptions and self.listener is not None:
            await self.listener(path, state)

    async def write(self, path: str, val: Any, *, ack: bool = False) -> None:
        """Write a value the way a user or another adapter would."""
        await self.set_state(path, StateValue(val=val, ack=ack))

    def value(self, path: str) -> Any:
        state = self.states.get(path)
        return None if state is None else state.val

    # ------------------------------------------------------------------
    # Subscriptions & messages
    # ------------------------------------------------------------------

    async def subscribe_states(self, path: str) -> None:
        self.subscriptions.add(path)

    async def subscribe_foreign_states(self, path: str) -> None:
        self.subscriptions.add(path)

    async def send_to(self, receiver: str, command: str, message: Mapping[str, Any], callback: Any = None) -> None:
        _logger.debug("sendTo %s command=%s", receiver, command)
        self.sent.append(SentMessage(receiver=receiver, command=command, message=dict(message), callback=callback))
