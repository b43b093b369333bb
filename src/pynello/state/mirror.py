"""Mirror named values into the host state tree.

:class:`StateMirror` is the only writer of adapter-owned values. It makes
sure a node's backing object exists before its first value is written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pynello.exceptions import HostError
from pynello.state.host import StateHost, StateObject, StateValue, now_ms

_logger = logging.getLogger(__name__)

DEFAULT_COMMON: dict[str, str] = {"role": "state", "type": "string"}


class NodeSpec(BaseModel):
    """A node path plus the metadata used if the node has to be created."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    node: str
    description: str | None = None
    role: str | None = None
    type: str | None = None
    common: dict[str, Any] = Field(default_factory=dict)
    native: dict[str, Any] = Field(default_factory=dict)

    def build_object(self) -> StateObject:
        """State object for a missing node.

        Defaults are overlaid by ``common`` and then by the explicit
        ``description``/``role``/``type``.
        """
        common: dict[str, Any] = {**DEFAULT_COMMON, **self.common}
        if self.description is not None:
            common["name"] = self.description
        if self.role is not None:
            common["role"] = self.role
        if self.type is not None:
            common["type"] = self.type
        return StateObject(id=self.node, type="state", common=common, native=dict(self.native))


class StateMirror:
    """Create-on-first-write access to the host state tree."""

    def __init__(self, host: StateHost, *, clock: Callable[[], int] = now_ms) -> None:
        self._host = host
        self._clock = clock

    @property
    def host(self) -> StateHost:
        return self._host

    async def ensure(self, node: NodeSpec) -> bool:
        """Create the node's object if missing.

        A failed lookup is logged and treated like a missing object.
        Returns ``False`` only when the object could not be created.
        """
        try:
            existing = await self._host.get_object(node.node)
        except HostError as exc:
            _logger.error("Lookup of %s failed: %s", node.node, exc)
            existing = None

        if existing is not None:
            return True

        _logger.debug("Creating node %s", node.node)
        try:
            await self._host.set_object(node.node, node.build_object())
        except HostError as exc:
            _logger.error("Creating node %s failed: %s", node.node, exc)
            return False
        return True

    async def write(self, path: str, value: Any) -> None:
        """Write an acknowledged value to an existing node."""
        try:
            await self._host.set_state(path, StateValue(val=value, ts=self._clock(), ack=True))
        except HostError as exc:
            _logger.error("Setting %s failed: %s", path, exc)

    async def set(self, node: NodeSpec, value: Any) -> None:
        """Ensure *node* exists, then write *value* to it.

        A ``None`` value only creates the node.
        """
        if await self.ensure(node) and value is not None:
            await self.write(node.node, value)
