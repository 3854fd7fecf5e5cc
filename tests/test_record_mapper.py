from __future__ import annotations

from datetime import datetime, timezone

import pytest

from clubhub.adapters.record_mapper import map_row, map_rows, parse_timestamp
from clubhub.core.errors import RecordValidationError
from clubhub.core.models import CalendarEvent, ChatMessage, EventRegistration


def _message_row(**overrides):
    row = {
        "id": "m1",
        "room_id": "room-a",
        "user_id": "user-1",
        "content": "hello",
        "created_at": "2024-03-01T12:00:00Z",
        "updated_at": None,
        "profiles": {"first_name": "Ada", "last_name": "Lovelace", "photo_url": "https://img/ada.png"},
    }
    row.update(overrides)
    return row


def test_map_chat_message_with_profile() -> None:
    message = map_row("chat_messages", _message_row())

    assert isinstance(message, ChatMessage)
    assert message.sender_name == "Ada Lovelace"
    assert message.sender_avatar == "https://img/ada.png"
    assert message.created_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    assert message.ordering_key == message.created_at


def test_map_chat_message_without_profile_uses_placeholder() -> None:
    message = map_row("chat_messages", _message_row(profiles=None))
    assert message.sender_name == "Unknown User"
    assert message.sender_avatar is None

    message = map_row("chat_messages", _message_row(profiles=[]))
    assert message.sender_name == "Unknown User"


def test_map_chat_message_profile_list_uses_first_row() -> None:
    message = map_row("chat_messages", _message_row(profiles=[{"first_name": "Grace", "last_name": None}]))
    assert message.sender_name == "Grace"


def test_map_chat_message_requires_room() -> None:
    with pytest.raises(RecordValidationError) as excinfo:
        map_row("chat_messages", _message_row(room_id=None))
    assert excinfo.value.field == "room_id"


def test_map_calendar_event_defaults() -> None:
    event = map_row(
        "events",
        {
            "id": "e1",
            "title": "Demo night",
            "start_datetime": "2024-03-05T18:00:00+00:00",
            "end_datetime": "2024-03-05T20:00:00+00:00",
            "event_type": "workshop",
            "is_public": False,
            "attendees_count": "3",
        },
    )

    assert isinstance(event, CalendarEvent)
    assert event.attendees_count == 3
    assert event.is_public is False
    assert event.ordering_key == event.start_datetime
    assert event.created_at == event.start_datetime


def test_map_registration_falls_back_to_created_at() -> None:
    registration = map_row(
        "event_registrations",
        {"id": "r1", "event_id": "e1", "user_id": "u1", "created_at": "2024-03-01T00:00:00Z"},
    )

    assert isinstance(registration, EventRegistration)
    assert registration.status == "registered"
    assert registration.is_active
    assert registration.created_at == registration.registered_at


def test_map_row_rejects_unknown_table_and_bad_rows() -> None:
    with pytest.raises(ValueError):
        map_row("unknown", {})
    with pytest.raises(RecordValidationError):
        map_row("events", ["not", "a", "row"])
    with pytest.raises(RecordValidationError):
        map_rows("events", {"id": "e1"})


def test_parse_timestamp_rejects_garbage() -> None:
    with pytest.raises(RecordValidationError):
        parse_timestamp("events", "start_datetime", "yesterday")
    with pytest.raises(RecordValidationError):
        parse_timestamp("events", "start_datetime", 12)


def test_timestamps_without_zone_are_read_as_utc() -> None:
    parsed = parse_timestamp("events", "start_datetime", "2024-03-05T10:00:00")
    assert parsed == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)

    naive = datetime(2024, 3, 5, 10)
    assert parse_timestamp("events", "start_datetime", naive).tzinfo is timezone.utc

    event = map_row(
        "events",
        {
            "id": "e1",
            "title": "Demo night",
            "start_datetime": "2024-03-05T18:00:00",
            "end_datetime": "2024-03-05T20:00:00",
            "created_at": "2024-02-20T09:30:00.123456",
        },
    )
    assert event.start_datetime.tzinfo is timezone.utc
    assert event.created_at.tzinfo is timezone.utc
