"""Webhook event feed.

Every event received from the webhook is appended to
``<location>.events.feed``, a JSON list capped at
``config.events_max_count`` entries. When the cap is reached the oldest
entries are dropped silently.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pynello._redact import redact_for_log
from pynello.adapter.context import AdapterContext
from pynello.adapter.nodes import events_path
from pynello.exceptions import HostError
from pynello.models.event import WebhookEvent
from pynello.state.mirror import NodeSpec
from pynello.utils import format_datetime

_logger = logging.getLogger(__name__)


def _load_feed(raw: Any, path: str) -> list[Any]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return []
    try:
        feed = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except json.JSONDecodeError:
        _logger.warning("Discarding unreadable event feed %s.", path)
        return []
    if not isinstance(feed, list):
        _logger.warning("Discarding event feed %s: not a list.", path)
        return []
    return list(feed)


def cap_feed(feed: list[Any], max_count: int) -> list[Any]:
    """Trim *feed* so that one more entry fits within *max_count*."""
    if len(feed) < max_count:
        return feed
    keep = max_count - 1
    return feed[len(feed) - keep :] if keep > 0 else []


class EventFeed:
    """Appends webhook events to the per-location feed."""

    def __init__(self, ctx: AdapterContext) -> None:
        self._ctx = ctx

    async def append(self, payload: Any) -> bool:
        """Record a webhook *payload*.

        Returns ``False`` (without logging) when ``action`` or ``data`` is
        missing.
        """
        event = WebhookEvent.from_payload(payload)
        if event is None:
            return False

        _logger.debug("LISTENER: %s", redact_for_log(payload))
        _logger.info("Received data from the webhook listener (action -%s-).", event.action)

        ctx = self._ctx
        base = events_path(event.location_id)
        await ctx.mirror.set(
            NodeSpec(node=f"{base}.refreshedTimestamp", description="Timestamp of the last event", role="value"),
            event.timestamp,
        )
        await ctx.mirror.set(
            NodeSpec(node=f"{base}.refreshedDateTime", description="DateTime of the last event", role="text"),
            format_datetime(event.timestamp * 1000),
        )

        feed_path = f"{base}.feed"
        try:
            current = await ctx.host.get_state(feed_path)
        except HostError as exc:
            _logger.error("Reading event feed %s failed: %s", feed_path, exc)
            current = None

        feed = cap_feed(_load_feed(None if current is None else current.val, feed_path), ctx.config.events_max_count)
        feed.append(event.to_feed_entry())

        await ctx.mirror.set(
            NodeSpec(node=feed_path, description="Activity feed / Event history", role="json"),
            json.dumps(feed),
        )
        return True
