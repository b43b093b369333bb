"""iCalendar handling for time windows.

The API exchanges a time window's schedule as iCalendar text. The adapter
publishes two views of it: the raw text and a structural form (nested
components and their properties). This module builds the structural form
with :mod:`icalendar` and performs the marker checks used before creating
a time window.
"""

from __future__ import annotations

import logging
from typing import Any

import icalendar

from pynello._constants import ICAL_MARKERS

_logger = logging.getLogger(__name__)

RAW_KEY = "_raw"


def missing_markers(text: str) -> list[str]:
    """Return the required iCalendar markers not present in *text*."""
    return [marker for marker in ICAL_MARKERS if marker not in text]


def has_required_markers(text: Any) -> bool:
    return isinstance(text, str) and not missing_markers(text)


def _property_value(value: Any) -> Any:
    if isinstance(value, list):
        return [_property_value(item) for item in value]
    if isinstance(value, str):
        text = str(value)
    else:
        encoded = value.to_ical()
        text = encoded.decode() if isinstance(encoded, bytes) else str(encoded)
    params = getattr(value, "params", None)
    if params:
        return {"value": text, "params": {str(key).lower(): str(param) for key, param in params.items()}}
    return text


def _component(component: icalendar.Component) -> dict[str, Any]:
    structure: dict[str, Any] = {str(name).lower(): _property_value(value) for name, value in component.items()}
    for sub in component.subcomponents:
        structure.setdefault(sub.name.lower(), []).append(_component(sub))
    return structure


def parse_ical(text: str) -> dict[str, Any]:
    """Parse iCalendar *text* into nested dicts.

    Components become lists keyed by their lower-cased name
    (``{"vcalendar": [{"vevent": [...]}]}``). Properties map to their value,
    or to ``{"value": ..., "params": {...}}`` when parameters are present.
    The original text is kept under ``_raw``.

    Raises
    ------
    ValueError
        If *text* is not valid iCalendar data.
    """
    root: dict[str, Any] = {}
    if text.strip():
        calendar = icalendar.Calendar.from_ical(text)
        root[calendar.name.lower()] = [_component(calendar)]
    root[RAW_KEY] = text
    return root


def split_ical(ical: Any) -> tuple[str, dict[str, Any]]:
    """Split a calendar into its raw text and its structural form.

    The structural form never carries the raw text. Unparsable text keeps
    its raw form and gets an empty structure.
    """
    if isinstance(ical, str):
        try:
            structure = parse_ical(ical)
        except ValueError as exc:
            _logger.warning("Could not parse calendar data: %s", exc)
            structure = {RAW_KEY: ical}
    elif isinstance(ical, dict):
        structure = dict(ical)
    else:
        structure = {}
    raw = structure.pop(RAW_KEY, "")
    return str(raw or ""), structure
