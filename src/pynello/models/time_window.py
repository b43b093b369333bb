"""Time window models."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pynello.exceptions import TimeWindowValidationError
from pynello.ical import has_required_markers, split_ical
from pynello.models._base import NelloBaseModel, safe_int, safe_str

_KNOWN_FIELDS = frozenset({"id", "name", "enabled", "state", "image", "ical"})


class TimeWindow(NelloBaseModel):
    """A calendar-bound permission rule of a location.

    ``ical`` holds the structural form of the calendar; the raw
    iCalendar text is kept in ``ical_raw``.
    """

    id: str
    name: str = ""
    enabled: bool | None = None
    state: int | None = None
    image: Any = None
    """Unused by the API."""
    ical_raw: str = ""
    ical: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value)

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("enabled", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool | None:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return value
        return bool(safe_int(value))

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> TimeWindow:
        """Build a time window, splitting the calendar into its two forms."""
        raw_text, structure = split_ical(item.get("ical"))
        return cls.model_validate({**item, "ical": structure, "ical_raw": raw_text, "raw": item})

    def published_fields(self) -> dict[str, Any]:
        """Scalar fields as mirrored below ``<location>.timeWindows.<id>``."""
        fields: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "state": self.state,
            "image": self.image,
        }
        for key, value in self.raw.items():
            if key in _KNOWN_FIELDS or key in fields:
                continue
            if value is None or isinstance(value, (str, int, float, bool)):
                fields[key] = value
        fields["icalRaw"] = self.ical_raw
        fields["icalObj"] = json.dumps(self.ical)
        return fields


class TimeWindowRequest(BaseModel):
    """Payload written to ``createTimeWindow`` to create a time window."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    ical: str

    @classmethod
    def from_json(cls, text: Any) -> TimeWindowRequest:
        """Parse and validate a JSON request.

        Raises
        ------
        TimeWindowValidationError
            If the JSON is malformed, ``name`` is not a string, or ``ical``
            lacks one of the iCalendar markers.
        """
        try:
            data = json.loads(text) if isinstance(text, (str, bytes)) else text
        except json.JSONDecodeError as exc:
            raise TimeWindowValidationError(f"Parsing error for time window data: {exc}") from exc
        if not isinstance(data, dict):
            raise TimeWindowValidationError("Parsing error for time window data: expected a JSON object.")

        if not isinstance(data.get("name"), str):
            raise TimeWindowValidationError("No name for the time window has been provided!")

        if not has_required_markers(data.get("ical")):
            raise TimeWindowValidationError(
                "Wrong ical data for timewindow provided! "
                "Missing BEGIN:VCALENDAR, END:VCALENDAR, BEGIN:VEVENT or END:VEVENT."
            )

        return cls(name=data["name"], ical=data["ical"])

    def to_payload(self) -> dict[str, str]:
        return {"name": self.name, "ical": self.ical}
