"""Row-to-record mapping adapter.

This keeps the backend's loosely typed JSON rows out of the core: every row
is mapped to its tagged record type here, and malformed rows fail fast with
``RecordValidationError`` instead of leaking missing fields downstream.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from clubhub.core.errors import RecordValidationError
from clubhub.core.models import CalendarEvent, ChatMessage, ChatRoom, EventRegistration, Profile

# Embedded joins requested for each table; display fields are recomputed on
# every fetch and never treated as authoritative.
SELECT_COLUMNS: dict[str, str] = {
    ChatMessage.TABLE: "*, profiles(first_name, last_name, photo_url)",
}

ORDER_COLUMNS: dict[str, str] = {
    ChatMessage.TABLE: "created_at",
    CalendarEvent.TABLE: "start_datetime",
    EventRegistration.TABLE: "registered_at",
    ChatRoom.TABLE: "created_at",
}


def _require(table: str, row: dict[str, Any], field: str) -> Any:
    value = row.get(field)
    if value is None or value == "":
        raise RecordValidationError(table, field, "is required")
    return value


def _text(table: str, row: dict[str, Any], field: str) -> str:
    value = _require(table, row, field)
    if not isinstance(value, (str, int)):
        raise RecordValidationError(table, field, f"expected text, got {type(value).__name__}")
    return str(value)


def _optional_text(row: dict[str, Any], field: str) -> Optional[str]:
    value = row.get(field)
    if value is None or value == "":
        return None
    return str(value)


def parse_timestamp(table: str, field: str, value: Any) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the relational API."""

    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        raise RecordValidationError(table, field, "expected an ISO-8601 timestamp")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise RecordValidationError(table, field, f"invalid timestamp {value!r}") from exc
    return _as_utc(parsed)


def _as_utc(value: datetime) -> datetime:
    # Columns without a time zone are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _timestamp(table: str, row: dict[str, Any], field: str) -> datetime:
    return parse_timestamp(table, field, _require(table, row, field))


def _optional_timestamp(table: str, row: dict[str, Any], field: str) -> Optional[datetime]:
    value = row.get(field)
    if value is None:
        return None
    return parse_timestamp(table, field, value)


def map_profile(row: dict[str, Any]) -> Profile:
    return Profile(
        id=_text(Profile.TABLE, row, "id"),
        first_name=_optional_text(row, "first_name"),
        last_name=_optional_text(row, "last_name"),
        photo_url=_optional_text(row, "photo_url"),
    )


def map_chat_message(row: dict[str, Any]) -> ChatMessage:
    """Map a message row, deriving sender display fields from the profile join."""

    table = ChatMessage.TABLE
    profile = row.get("profiles")
    if isinstance(profile, list):
        # One-to-many embeds come back as lists; the sender is the first row.
        profile = profile[0] if profile else None
    if profile is not None and not isinstance(profile, dict):
        raise RecordValidationError(table, "profiles", "expected an object")

    sender_name = "Unknown User"
    sender_avatar = None
    if profile:
        name = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()
        sender_name = name or "Unknown User"
        sender_avatar = profile.get("photo_url") or None

    return ChatMessage(
        id=_text(table, row, "id"),
        room_id=_text(table, row, "room_id"),
        user_id=_text(table, row, "user_id"),
        content=str(row.get("content") or ""),
        created_at=_timestamp(table, row, "created_at"),
        updated_at=_optional_timestamp(table, row, "updated_at"),
        sender_name=sender_name,
        sender_avatar=sender_avatar,
    )


def map_calendar_event(row: dict[str, Any]) -> CalendarEvent:
    table = CalendarEvent.TABLE
    start = _timestamp(table, row, "start_datetime")
    attendees = row.get("attendees_count") or 0
    try:
        attendees_count = int(attendees)
    except (TypeError, ValueError) as exc:
        raise RecordValidationError(table, "attendees_count", "expected an integer") from exc
    return CalendarEvent(
        id=_text(table, row, "id"),
        title=_text(table, row, "title"),
        start_datetime=start,
        end_datetime=_optional_timestamp(table, row, "end_datetime") or start,
        event_type=_optional_text(row, "event_type") or "other",
        is_public=bool(row.get("is_public", True)),
        created_at=_optional_timestamp(table, row, "created_at") or start,
        description=_optional_text(row, "description"),
        location_type=_optional_text(row, "location_type"),
        physical_address=_optional_text(row, "physical_address"),
        virtual_meeting_url=_optional_text(row, "virtual_meeting_url"),
        attendees_count=attendees_count,
        image_url=_optional_text(row, "image_url"),
    )


def map_event_registration(row: dict[str, Any]) -> EventRegistration:
    table = EventRegistration.TABLE
    registered_at = row.get("registered_at") or row.get("created_at")
    if registered_at is None:
        raise RecordValidationError(table, "registered_at", "is required")
    return EventRegistration(
        id=_text(table, row, "id"),
        event_id=_text(table, row, "event_id"),
        user_id=_text(table, row, "user_id"),
        status=_optional_text(row, "status") or "registered",
        registered_at=parse_timestamp(table, "registered_at", registered_at),
        role=_optional_text(row, "role"),
        user_company=_optional_text(row, "user_company"),
    )


def map_chat_room(row: dict[str, Any]) -> ChatRoom:
    table = ChatRoom.TABLE
    return ChatRoom(
        id=_text(table, row, "id"),
        name=_text(table, row, "name"),
        created_at=_timestamp(table, row, "created_at"),
        description=_optional_text(row, "description"),
        is_private=bool(row.get("is_private", False)),
        status=_optional_text(row, "status") or "active",
        created_by=_optional_text(row, "created_by"),
    )


MAPPERS: dict[str, Callable[[dict[str, Any]], Any]] = {
    ChatMessage.TABLE: map_chat_message,
    CalendarEvent.TABLE: map_calendar_event,
    EventRegistration.TABLE: map_event_registration,
    ChatRoom.TABLE: map_chat_room,
    Profile.TABLE: map_profile,
}


def map_row(table: str, row: Any) -> Any:
    """Map one raw row of ``table`` to its record type."""

    mapper = MAPPERS.get(table)
    if mapper is None:
        raise ValueError(f"Unsupported table: {table}")
    if not isinstance(row, dict):
        raise RecordValidationError(table, "*", f"expected an object, got {type(row).__name__}")
    return mapper(row)


def map_rows(table: str, rows: Any) -> list[Any]:
    if not isinstance(rows, list):
        raise RecordValidationError(table, "*", "expected a list of rows")
    return [map_row(table, row) for row in rows]
