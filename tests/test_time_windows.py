from __future__ import annotations

import asyncio
import json
import logging

import pytest
from conftest import ICAL, LOCATION_ID, FakeNelloBackend, window

from pynello.adapter.context import AdapterContext
from pynello.adapter.time_windows import TimeWindowReconciler
from pynello.config import NelloConfig
from pynello.state.host import StateObject, StateValue
from pynello.state.memory import MemoryStateTree
from pynello.state.mirror import StateMirror

BASE = f"{LOCATION_ID}.timeWindows"


def _user_write(val: object) -> StateValue:
    return StateValue(val=val, ack=False)


@pytest.mark.asyncio
async def test_index_follows_fetch_order(ctx: AdapterContext, backend: FakeNelloBackend) -> None:
    backend.windows[LOCATION_ID] = [window("b"), window("a")]
    reconciler = TimeWindowReconciler(ctx)

    assert await reconciler.refresh(LOCATION_ID) is True

    assert ctx.host.value(f"{BASE}.indexedTimeWindows") == "b,a"  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_index_tracks_upstream_list_without_purge(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("a"), window("b")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    backend.windows[LOCATION_ID] = [window("c"), window("a")]
    await reconciler.fetch_and_publish(LOCATION_ID)

    assert tree.value(f"{BASE}.indexedTimeWindows") == "c,a"
    assert list(ctx.record(LOCATION_ID).time_windows) == ["c", "a"]


@pytest.mark.asyncio
async def test_publishes_fields_and_controls(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("a", "Cleaning")]
    reconciler = TimeWindowReconciler(ctx)

    await reconciler.refresh(LOCATION_ID)

    assert tree.value(f"{BASE}.a") == ""
    assert tree.objects[f"{BASE}.a"].common["name"] == "Time Window: Cleaning"
    assert tree.value(f"{BASE}.a.id") == "a"
    assert tree.value(f"{BASE}.a.name") == "Cleaning"
    assert tree.value(f"{BASE}.a.enabled") is True
    assert tree.value(f"{BASE}.a.state") == 1
    assert tree.value(f"{BASE}.a.icalRaw") == ICAL
    assert tree.objects[f"{BASE}.a.icalRaw"].common["role"] == "text"

    structure = json.loads(tree.value(f"{BASE}.a.icalObj"))
    assert "_raw" not in structure
    assert structure["vcalendar"][0]["vevent"][0]["summary"] == "Cleaning"

    delete_obj = tree.objects[f"{BASE}.a.deleteTimeWindow"]
    assert delete_obj.common["locationId"] == LOCATION_ID
    assert delete_obj.common["timeWindowId"] == "a"
    assert delete_obj.common["role"] == "button.delete"
    assert tree.value(f"{BASE}.a.deleteTimeWindow") is False

    create_obj = tree.objects[f"{BASE}.createTimeWindow"]
    assert create_obj.common["role"] == "json"
    assert create_obj.common["write"] is True
    assert f"{BASE}.createTimeWindow" not in tree.states
    assert tree.value(f"{BASE}.deleteAllTimeWindows") is False

    assert {
        f"{BASE}.a.deleteTimeWindow",
        f"{BASE}.createTimeWindow",
        f"{BASE}.deleteAllTimeWindows",
    } <= tree.subscriptions


@pytest.mark.asyncio
async def test_fetch_and_publish_is_idempotent(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("a"), window("b")]
    reconciler = TimeWindowReconciler(ctx)

    await reconciler.fetch_and_publish(LOCATION_ID)
    first = {path: state.val for path, state in tree.states.items()}
    await reconciler.fetch_and_publish(LOCATION_ID)
    second = {path: state.val for path, state in tree.states.items()}

    assert first == second
    assert second[f"{BASE}.indexedTimeWindows"] == "a,b"


@pytest.mark.asyncio
async def test_purge_removes_stale_windows(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("old")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    backend.windows[LOCATION_ID] = [window("new")]
    await reconciler.refresh(LOCATION_ID)

    assert f"{BASE}.old" not in tree.objects
    assert f"{BASE}.old.name" not in tree.states
    assert tree.value(f"{BASE}.new.name") == "Window new"
    assert list(ctx.record(LOCATION_ID).time_windows) == ["new"]


class _SlowListingTree(MemoryStateTree):
    async def get_states_of(self, device: str, channel: str) -> list[StateObject]:
        listed = await super().get_states_of(device, channel)
        await asyncio.sleep(0.01)
        return listed


@pytest.mark.asyncio
async def test_slow_purge_never_deletes_freshly_fetched_nodes(backend: FakeNelloBackend) -> None:
    tree = _SlowListingTree()
    ctx = AdapterContext(config=NelloConfig(access_token="t"), host=tree, api=backend, mirror=StateMirror(tree))
    backend.windows[LOCATION_ID] = [window("a")]
    reconciler = TimeWindowReconciler(ctx)

    await reconciler.refresh(LOCATION_ID)
    await reconciler.refresh(LOCATION_ID)

    assert tree.value(f"{BASE}.a.name") == "Window a"
    assert tree.value(f"{BASE}.indexedTimeWindows") == "a"


@pytest.mark.asyncio
async def test_fetch_failure_aborts_after_purge(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, caplog: pytest.LogCaptureFixture
) -> None:
    backend.windows[LOCATION_ID] = [window("a")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    backend.failing.add("get_time_windows")
    with caplog.at_level(logging.ERROR):
        assert await reconciler.refresh(LOCATION_ID) is False

    assert f"{BASE}.a" not in tree.objects
    assert f"{BASE}.indexedTimeWindows" not in tree.states
    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_create_valid_request_refreshes_and_resets(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    path = f"{BASE}.createTimeWindow"

    await reconciler.create(path, _user_write(json.dumps({"name": "Nanny", "ical": ICAL})))

    assert backend.count("create_time_window") == 1
    created_id = backend.windows[LOCATION_ID][0]["id"]
    assert tree.value(f"{BASE}.{created_id}.name") == "Nanny"
    assert tree.value(f"{BASE}.indexedTimeWindows") == created_id
    assert path in tree.states
    assert tree.value(path) is None


@pytest.mark.asyncio
async def test_create_rejects_missing_begin_vcalendar(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, caplog: pytest.LogCaptureFixture
) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    path = f"{BASE}.createTimeWindow"
    ical = ICAL.replace("BEGIN:VCALENDAR\r\n", "")

    with caplog.at_level(logging.ERROR):
        await reconciler.create(path, _user_write(json.dumps({"name": "Nanny", "ical": ical})))

    assert backend.count("create_time_window") == 0
    assert "Missing BEGIN:VCALENDAR" in caplog.text
    assert tree.value(path) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    ["not json", json.dumps({"ical": ICAL}), json.dumps({"name": 5, "ical": ICAL}), json.dumps(["x"])],
)
async def test_create_rejects_malformed_payloads(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, payload: str
) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    await reconciler.create(f"{BASE}.createTimeWindow", _user_write(payload))

    assert backend.count("create_time_window") == 0


@pytest.mark.asyncio
async def test_create_api_failure_is_logged_and_reset(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, caplog: pytest.LogCaptureFixture
) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    backend.failing.add("create_time_window")
    path = f"{BASE}.createTimeWindow"
    fetches = backend.count("get_time_windows")

    with caplog.at_level(logging.ERROR):
        await reconciler.create(path, _user_write(json.dumps({"name": "Nanny", "ical": ICAL})))

    assert "Creation for time window failed" in caplog.text
    assert backend.count("get_time_windows") == fetches
    assert tree.value(path) is None


@pytest.mark.asyncio
async def test_create_ignores_acknowledged_and_empty_writes(ctx: AdapterContext, backend: FakeNelloBackend) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    path = f"{BASE}.createTimeWindow"
    body = json.dumps({"name": "Nanny", "ical": ICAL})

    await reconciler.create(path, StateValue(val=body, ack=True))
    await reconciler.create(path, StateValue(val=None, ack=False))

    assert backend.count("create_time_window") == 0


@pytest.mark.asyncio
async def test_delete_one_removes_subtree_and_refreshes(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("a"), window("b")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    await reconciler.delete(f"{BASE}.a.deleteTimeWindow", _user_write(True))

    assert ("delete_time_window", LOCATION_ID, "a") in backend.calls
    assert f"{BASE}.a" not in tree.objects
    assert f"{BASE}.a.name" not in tree.states
    assert "a" not in ctx.record(LOCATION_ID).time_windows
    assert tree.value(f"{BASE}.indexedTimeWindows") == "b"


@pytest.mark.asyncio
async def test_delete_one_failure_keeps_tree(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, caplog: pytest.LogCaptureFixture
) -> None:
    backend.windows[LOCATION_ID] = [window("a")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    backend.failing_deletes.add("a")

    with caplog.at_level(logging.ERROR):
        await reconciler.delete(f"{BASE}.a.deleteTimeWindow", _user_write(True))

    assert "Deleting time window failed" in caplog.text
    assert tree.value(f"{BASE}.a.name") == "Window a"
    assert "a" in ctx.record(LOCATION_ID).time_windows


@pytest.mark.asyncio
async def test_delete_one_ignores_acknowledged_write(ctx: AdapterContext, backend: FakeNelloBackend) -> None:
    backend.windows[LOCATION_ID] = [window("a")]
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    await reconciler.delete(f"{BASE}.a.deleteTimeWindow", StateValue(val=False, ack=True))

    assert backend.count("delete_time_window") == 0


@pytest.mark.asyncio
async def test_delete_all_deletes_concurrently_and_refreshes_once(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    backend.windows[LOCATION_ID] = [window("a"), window("b"), window("c")]
    # "a" finishes last, so completions arrive out of order.
    backend.delete_delays = {"a": 0.03, "b": 0.01}
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    fetches = backend.count("get_time_windows")

    await reconciler.delete_all(f"{BASE}.deleteAllTimeWindows", _user_write(True))

    assert backend.count("delete_time_window") == 3
    assert backend.count("get_time_windows") == fetches + 1
    assert tree.value(f"{BASE}.indexedTimeWindows") == ""
    assert f"{BASE}.a" not in tree.objects
    assert tree.value(f"{BASE}.deleteAllTimeWindows") is False


@pytest.mark.asyncio
async def test_delete_all_partial_failure_still_refreshes(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree, caplog: pytest.LogCaptureFixture
) -> None:
    backend.windows[LOCATION_ID] = [window("a"), window("b")]
    backend.failing_deletes.add("a")
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)

    with caplog.at_level(logging.ERROR):
        await reconciler.delete_all(f"{BASE}.deleteAllTimeWindows", _user_write(True))

    assert "Deleting time window a failed" in caplog.text
    assert tree.value(f"{BASE}.indexedTimeWindows") == "a"


@pytest.mark.asyncio
async def test_delete_all_with_no_windows_still_republishes(
    ctx: AdapterContext, backend: FakeNelloBackend, tree: MemoryStateTree
) -> None:
    reconciler = TimeWindowReconciler(ctx)
    await reconciler.refresh(LOCATION_ID)
    await tree.del_object(f"{BASE}.indexedTimeWindows")

    await reconciler.delete_all(f"{BASE}.deleteAllTimeWindows", _user_write(True))

    assert backend.count("delete_time_window") == 0
    assert tree.value(f"{BASE}.indexedTimeWindows") == ""


@pytest.mark.asyncio
async def test_periodic_refresh_repeats_cycle_and_stops(tree: MemoryStateTree, backend: FakeNelloBackend) -> None:
    ctx = AdapterContext(
        config=NelloConfig(access_token="t", refresh=11),
        host=tree,
        api=backend,
        mirror=StateMirror(tree),
    )
    reconciler = TimeWindowReconciler(ctx)
    sleeps: list[float] = []
    real_sleep = asyncio.sleep

    async def _fast_sleep(delay: float) -> None:
        sleeps.append(delay)
        await real_sleep(0)

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr("pynello.adapter.time_windows.asyncio.sleep", _fast_sleep)
        assert reconciler.start_periodic(LOCATION_ID) is True
        for _ in range(10):
            await real_sleep(0)
        await reconciler.stop()

    assert sleeps and sleeps[0] == 11.0
    assert backend.count("get_time_windows") >= 1


def test_periodic_refresh_disabled_for_short_intervals(tree: MemoryStateTree, backend: FakeNelloBackend) -> None:
    ctx = AdapterContext(
        config=NelloConfig(access_token="t", refresh=10),
        host=tree,
        api=backend,
        mirror=StateMirror(tree),
    )
    assert TimeWindowReconciler(ctx).start_periodic(LOCATION_ID) is False
