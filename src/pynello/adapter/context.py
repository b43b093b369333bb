"""Per-adapter-instance state shared by the reconciler and the event feed."""

from __future__ import annotations

from dataclasses import dataclass, field

from pynello.client import NelloApi
from pynello.config import NelloConfig
from pynello.models.location import Location
from pynello.models.time_window import TimeWindow
from pynello.state.host import StateHost
from pynello.state.mirror import StateMirror


@dataclass
class LocationRecord:
    """In-memory view of a location and its mirrored time windows."""

    location: Location
    time_windows: dict[str, TimeWindow] = field(default_factory=dict)

    @property
    def location_id(self) -> str:
        return self.location.location_id

    @property
    def address(self) -> str:
        return self.location.address.full_address


@dataclass
class AdapterContext:
    """Everything an adapter operation needs, owned by one adapter instance."""

    config: NelloConfig
    host: StateHost
    api: NelloApi
    mirror: StateMirror
    locations: dict[str, LocationRecord] = field(default_factory=dict)

    def record(self, location_id: str) -> LocationRecord:
        """Record for *location_id*, created empty if the location is unknown."""
        record = self.locations.get(location_id)
        if record is None:
            record = LocationRecord(location=Location(location_id=location_id))
            self.locations[location_id] = record
        return record

    def describe(self, location_id: str) -> str:
        """Human readable name for log messages."""
        record = self.locations.get(location_id)
        if record is None:
            return location_id
        return f"{record.address} ({location_id})"
