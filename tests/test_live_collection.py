from __future__ import annotations

import asyncio

import clubhub.core.live_collection as live_collection_module
from clubhub.adapters.record_mapper import map_row
from clubhub.core.live_collection import LiveCollection
from clubhub.core.scopes import month_scope, room_scope
from clubhub.core.subscription import ChannelState

from fakes import ROOM_A, ROOM_B, FakeGateway, FakeNotices, insert_event, make_message


async def _until(condition, attempts: int = 50) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _ids(collection: LiveCollection) -> list[str]:
    return [item.id for item in collection.items]


def test_mount_loads_snapshot_and_subscribes() -> None:
    gateway = FakeGateway([make_message("m2", minutes=2), make_message("m1", minutes=1)])
    notices = FakeNotices()
    seen: list[tuple] = []

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, notices, label="chat messages", on_change=seen.append)
        await live.mount(room_scope(ROOM_A))
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["m1", "m2"]
    assert live.channel_state is ChannelState.SUBSCRIBED
    assert gateway.handles[-1].scope == room_scope(ROOM_A)
    assert seen[-1] == live.items
    assert notices.notices == []


def test_mounting_same_scope_twice_is_noop() -> None:
    gateway = FakeGateway([make_message("m1")])

    async def scenario() -> None:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        await live.mount(room_scope(ROOM_A))

    asyncio.run(scenario())

    assert len(gateway.handles) == 1
    assert gateway.collection_calls == 1


def test_replayed_insert_does_not_duplicate() -> None:
    gateway = FakeGateway([make_message("m1")])

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        gateway.emit(insert_event("chat_messages", "m1"))
        gateway.emit(insert_event("chat_messages", "m1"))
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["m1"]


def test_out_of_order_enrichment_keeps_arrival_order() -> None:
    gateway = FakeGateway([make_message("m1", minutes=0)])

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))

        gateway.add(make_message("m2", minutes=1))
        gateway.add(make_message("m3", minutes=2))
        gateway.gates["m2"] = asyncio.Event()
        gateway.gates["m3"] = asyncio.Event()
        gateway.emit(insert_event("chat_messages", "m2"))
        gateway.emit(insert_event("chat_messages", "m3"))

        gateway.gates["m3"].set()
        await _until(lambda: len(live.items) == 2)
        assert _ids(live) == ["m1", "m3"]

        gateway.gates["m2"].set()
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["m1", "m3", "m2"]


def test_unmount_during_enrichment_never_merges(monkeypatch) -> None:
    gateway = FakeGateway([make_message("m1")])
    calls: list = []
    real_merge = live_collection_module.merge

    def counting_merge(collection, record):
        calls.append(record.id)
        return real_merge(collection, record)

    monkeypatch.setattr(live_collection_module, "merge", counting_merge)

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        handle = gateway.handles[-1]

        gateway.add(make_message("m2", minutes=1))
        gateway.gates["m2"] = asyncio.Event()
        gateway.emit(insert_event("chat_messages", "m2"), handle)
        await asyncio.sleep(0)

        await live.unmount()
        gateway.gates["m2"].set()
        for _ in range(10):
            await asyncio.sleep(0)
        return live

    live = asyncio.run(scenario())

    assert calls == []
    assert live.items == ()
    assert len(gateway.unsubscribed) == 1


def test_scope_change_isolates_late_records() -> None:
    gateway = FakeGateway([make_message("a1", room_id=ROOM_A), make_message("b1", room_id=ROOM_B)])

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        old_handle = gateway.handles[-1]

        gateway.add(make_message("a2", room_id=ROOM_A, minutes=1))
        gateway.gates["a2"] = asyncio.Event()
        old_handle.on_change(insert_event("chat_messages", "a2"))
        await asyncio.sleep(0)

        await live.mount(room_scope(ROOM_B))
        gateway.gates["a2"].set()
        # A late delivery on the old handle is ignored too.
        old_handle.on_change(insert_event("chat_messages", "a1"))
        for _ in range(10):
            await asyncio.sleep(0)
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["b1"]
    assert live.scope == room_scope(ROOM_B)
    assert gateway.unsubscribed[0].scope == room_scope(ROOM_A)


def test_own_message_appears_only_through_channel() -> None:
    gateway = FakeGateway([make_message("m1")])

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        gateway.add(make_message("mine", user_id="me", minutes=1))
        gateway.emit(insert_event("chat_messages", "mine"))
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["m1", "mine"]


def test_load_failure_notifies_and_empties() -> None:
    gateway = FakeGateway([make_message("m1")])
    gateway.fail_collection = True
    notices = FakeNotices()

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, notices, label="chat messages")
        await live.mount(room_scope(ROOM_A))
        return live

    live = asyncio.run(scenario())

    assert live.items == ()
    assert live.error == "Could not load chat messages"
    assert notices.titles == ["Error loading chat messages"]
    assert notices.notices[0].level == "error"


def test_subscribe_failure_warns_but_keeps_snapshot() -> None:
    gateway = FakeGateway([make_message("m1")])
    gateway.fail_subscribe = True
    notices = FakeNotices()

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, notices, label="chat messages")
        await live.mount(room_scope(ROOM_A))
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["m1"]
    assert notices.titles == ["Connection Error"]
    assert "New chat messages may not appear immediately" in notices.notices[0].description


def test_invalid_scope_mounts_empty_without_channel() -> None:
    gateway = FakeGateway([make_message("m1")])

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(None))
        return live

    live = asyncio.run(scenario())

    assert live.items == ()
    assert gateway.handles == []
    assert live.channel_state is ChannelState.CLOSED


def test_unmount_twice_is_safe() -> None:
    gateway = FakeGateway([make_message("m1")])

    async def scenario() -> None:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        await live.mount(room_scope(ROOM_A))
        await live.unmount()
        await live.unmount()

    asyncio.run(scenario())

    assert len(gateway.unsubscribed) == 1


def test_unmount_while_subscribing_releases_channel() -> None:
    gateway = FakeGateway([make_message("m1")])
    gateway.subscribe_gate = asyncio.Event()

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, FakeNotices(), label="chat messages")
        mounting = asyncio.get_running_loop().create_task(live.mount(room_scope(ROOM_A)))
        await _until(lambda: live.channel_state is ChannelState.OPENING)
        assert _ids(live) == ["m1"]

        await live.unmount()
        gateway.subscribe_gate.set()
        await mounting

        gateway.add(make_message("m2", minutes=1))
        gateway.emit(insert_event("chat_messages", "m2"))
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert live.items == ()
    assert live.channel_state is ChannelState.CLOSED
    assert gateway.unsubscribed == gateway.handles
    assert len(gateway.handles) == 1


def test_month_insert_with_zoneless_timestamp_is_merged() -> None:
    gateway = FakeGateway()
    notices = FakeNotices()
    event = map_row(
        "events",
        {
            "id": "e1",
            "title": "Demo night",
            "start_datetime": "2024-03-05T10:00:00",
            "end_datetime": "2024-03-05T12:00:00",
        },
    )

    async def scenario() -> LiveCollection:
        live = LiveCollection(gateway, notices, label="events")
        await live.mount(month_scope(2024, 3))
        gateway.add(event)
        gateway.emit(insert_event("events", "e1"))
        await live.drain()
        return live

    live = asyncio.run(scenario())

    assert _ids(live) == ["e1"]
    assert notices.notices == []
