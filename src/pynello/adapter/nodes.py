"""Paths and creation metadata of the nodes the adapter publishes."""

from __future__ import annotations

from typing import Any

from pynello.state.mirror import NodeSpec

# Per-field metadata, keyed by "<channel>.<field>".
FIELD_METADATA: dict[str, dict[str, str]] = {
    "address.address": {"role": "text", "description": "Full address of the location"},
    "address.city": {"role": "text", "description": "City of the location"},
    "address.country": {"role": "text", "description": "Country of the location"},
    "address.state": {"role": "text", "description": "State  of the location"},
    "address.street": {"role": "text", "description": "Street with number of the location"},
    "address.streetName": {"role": "text", "description": "Street name of the location"},
    "address.streetNumber": {"role": "text", "description": "Street number of the location"},
    "address.zip": {"role": "text", "description": "ZIP code of the location"},
    "timeWindows.enabled": {"role": "indicator", "description": "State whether time window is enabled"},
    "timeWindows.icalObj": {"role": "json", "description": "Object of the calendar data"},
    "timeWindows.icalRaw": {"role": "text", "description": "Text of the calendar data in iCal format"},
    "timeWindows.id": {"role": "id", "description": "ID of the time window"},
    "timeWindows.image": {"role": "disabled", "description": "(not in used)"},
    "timeWindows.name": {"role": "text", "description": "Name of the time window"},
    "timeWindows.state": {"role": "indicator", "description": "State"},
}

ADDRESS = "address"
TIME_WINDOWS = "timeWindows"
EVENTS = "events"

OPEN_DOOR = "_openDoor"
CREATE_TIME_WINDOW = "createTimeWindow"
DELETE_TIME_WINDOW = "deleteTimeWindow"
DELETE_ALL_TIME_WINDOWS = "deleteAllTimeWindows"
INDEXED_TIME_WINDOWS = "indexedTimeWindows"


def field_node(path: str, channel: str, key: str) -> NodeSpec:
    """Node for a mirrored field, with its table metadata when known."""
    return NodeSpec(node=f"{path}.{key}", **FIELD_METADATA.get(f"{channel}.{key}", {}))


def button_node(path: str, description: str, **attributes: Any) -> NodeSpec:
    """Writable boolean control node."""
    common = {**attributes, "role": attributes.get("role", "button"), "type": "boolean", "write": True}
    return NodeSpec(node=path, description=description, common=common)


def time_windows_path(location_id: str) -> str:
    return f"{location_id}.{TIME_WINDOWS}"


def events_path(location_id: str) -> str:
    return f"{location_id}.{EVENTS}"
