"""State-tree layer.

The host runtime's object/state store is reached through the
:class:`~pynello.state.host.StateHost` protocol; :class:`StateMirror` is the
only component that writes adapter-owned values into it.
"""

from pynello.state.host import StateHost, StateObject, StateValue
from pynello.state.memory import MemoryStateTree
from pynello.state.mirror import NodeSpec, StateMirror

__all__ = [
    "MemoryStateTree",
    "NodeSpec",
    "StateHost",
    "StateMirror",
    "StateObject",
    "StateValue",
]
