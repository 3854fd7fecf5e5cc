from __future__ import annotations

import asyncio

import pytest

from clubhub.core.errors import SubscriptionFailure
from clubhub.core.models import ChangeEvent, Operation
from clubhub.core.ports import CHANNEL_ERROR, CLOSED, TIMED_OUT
from clubhub.core.scopes import room_scope
from clubhub.core.subscription import ChannelState, SubscriptionManager

from fakes import ROOM_A, ROOM_B, FakeGateway, insert_event, make_message


def test_open_then_close_state_machine() -> None:
    gateway = FakeGateway(auto_subscribe=False)
    applied: list = []

    async def scenario() -> None:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        assert manager.state is ChannelState.CLOSED
        await manager.open()
        assert manager.state is ChannelState.OPENING
        gateway.handles[-1].on_status("SUBSCRIBED", None)
        assert manager.state is ChannelState.SUBSCRIBED
        await manager.close()
        assert manager.state is ChannelState.CLOSED
        await manager.close()

    asyncio.run(scenario())

    assert len(gateway.handles) == 1
    assert len(gateway.unsubscribed) == 1


def test_open_is_one_shot() -> None:
    gateway = FakeGateway()

    async def scenario() -> None:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), lambda record: None)
        await manager.open()
        await manager.open()
        await manager.close()
        await manager.open()
        assert manager.state is ChannelState.CLOSED

    asyncio.run(scenario())

    assert len(gateway.handles) == 1


def test_open_invalid_scope_raises() -> None:
    manager = SubscriptionManager(FakeGateway(), room_scope(None), lambda record: None)

    with pytest.raises(SubscriptionFailure):
        asyncio.run(manager.open())


def test_open_gateway_failure_raises_and_stays_closed() -> None:
    gateway = FakeGateway()
    gateway.fail_subscribe = True
    manager = SubscriptionManager(gateway, room_scope(ROOM_A), lambda record: None)

    with pytest.raises(SubscriptionFailure):
        asyncio.run(manager.open())
    assert manager.state is ChannelState.CLOSED


def test_insert_is_enriched_and_applied() -> None:
    gateway = FakeGateway([make_message("m1")])
    applied: list = []

    async def scenario() -> None:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        await manager.open()
        gateway.emit(insert_event("chat_messages", "m1"))
        await manager.drain()

    asyncio.run(scenario())

    assert [record.id for record in applied] == ["m1"]


def test_insert_outside_scope_is_dropped() -> None:
    gateway = FakeGateway([make_message("m1", room_id=ROOM_B)])
    applied: list = []

    async def scenario() -> None:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        await manager.open()
        gateway.emit(insert_event("chat_messages", "m1"))
        await manager.drain()

    asyncio.run(scenario())

    assert applied == []


def test_enrichment_failure_is_dropped_without_warning() -> None:
    gateway = FakeGateway([make_message("m1")])
    gateway.fail_fetch_ids.add("m1")
    applied: list = []
    warnings: list = []

    async def scenario() -> None:
        manager = SubscriptionManager(
            gateway, room_scope(ROOM_A), applied.append, on_warning=warnings.append
        )
        await manager.open()
        gateway.emit(insert_event("chat_messages", "m1"))
        await manager.drain()
        assert manager.state is ChannelState.SUBSCRIBED

    asyncio.run(scenario())

    assert applied == []
    assert warnings == []


def test_non_insert_goes_to_other_change_hook() -> None:
    gateway = FakeGateway([make_message("m1")])
    applied: list = []
    others: list[ChangeEvent] = []

    async def scenario() -> None:
        manager = SubscriptionManager(
            gateway, room_scope(ROOM_A), applied.append, on_other_change=others.append
        )
        await manager.open()
        gateway.emit(ChangeEvent(Operation.UPDATE, "chat_messages", "m1"))
        gateway.emit(ChangeEvent(Operation.DELETE, "chat_messages", "m1"))
        await manager.drain()

    asyncio.run(scenario())

    assert applied == []
    assert [event.operation for event in others] == [Operation.UPDATE, Operation.DELETE]


def test_error_statuses_warn_and_close_status_closes() -> None:
    gateway = FakeGateway()
    warnings: list[SubscriptionFailure] = []

    async def scenario() -> SubscriptionManager:
        manager = SubscriptionManager(
            gateway, room_scope(ROOM_A), lambda record: None, on_warning=warnings.append
        )
        await manager.open()
        handle = gateway.handles[-1]
        handle.on_status(CHANNEL_ERROR, RuntimeError("lost"))
        handle.on_status(TIMED_OUT, None)
        handle.on_status(CLOSED, None)
        handle.on_status(CHANNEL_ERROR, None)
        return manager

    manager = asyncio.run(scenario())

    assert len(warnings) == 2
    assert manager.state is ChannelState.CLOSED


def test_events_after_close_are_ignored() -> None:
    gateway = FakeGateway([make_message("m1")])
    applied: list = []

    async def scenario() -> None:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        await manager.open()
        handle = gateway.handles[-1]
        await manager.close()
        handle.on_change(insert_event("chat_messages", "m1"))
        await manager.drain()

    asyncio.run(scenario())

    assert applied == []


def test_close_during_enrichment_drops_record() -> None:
    gateway = FakeGateway([make_message("m1")])
    applied: list = []

    async def scenario() -> None:
        gateway.gates["m1"] = asyncio.Event()
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        await manager.open()
        gateway.emit(insert_event("chat_messages", "m1"))
        await asyncio.sleep(0)
        await manager.close()
        gateway.gates["m1"].set()
        await manager.drain()

    asyncio.run(scenario())

    assert applied == []


def test_close_during_subscribe_releases_late_handle() -> None:
    gateway = FakeGateway()
    gateway.subscribe_gate = asyncio.Event()
    applied: list = []

    async def scenario() -> SubscriptionManager:
        manager = SubscriptionManager(gateway, room_scope(ROOM_A), applied.append)
        opening = asyncio.get_running_loop().create_task(manager.open())
        await asyncio.sleep(0)
        assert manager.state is ChannelState.OPENING

        await manager.close()
        gateway.subscribe_gate.set()
        await opening

        gateway.add(make_message("m1"))
        gateway.emit(insert_event("chat_messages", "m1"))
        await manager.drain()
        return manager

    manager = asyncio.run(scenario())

    assert manager.state is ChannelState.CLOSED
    assert gateway.unsubscribed == gateway.handles
    assert len(gateway.unsubscribed) == 1
    assert applied == []
