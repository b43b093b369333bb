"""Small helpers shared by the adapter layer."""

from __future__ import annotations

from datetime import datetime


def format_datetime(timestamp_ms: float | None) -> str:
    """Format an epoch timestamp in milliseconds as ``DD.MM.YYYY HH:MM:SS``.

    Local time is used. ``None`` and timestamps outside the platform's
    date range yield an empty string.
    """
    if timestamp_ms is None:
        return ""
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000)
    except (OverflowError, OSError, ValueError):
        return ""
    return moment.strftime("%d.%m.%Y %H:%M:%S")


def encode(key: str, text: str) -> str:
    """XOR every character of *text* with the repeating *key*."""
    if not key:
        raise ValueError("key must be non-empty")
    return "".join(chr(ord(key[i % len(key)]) ^ ord(ch)) for i, ch in enumerate(text))


def decode(key: str, text: str) -> str:
    """Reverse :func:`encode`. The XOR is symmetric."""
    return encode(key, text)
