"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types. Every live record type carries a
``TABLE`` tag, a primary key and an ordering timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Protocol, Tuple


class Operation(str, Enum):
    """Row operations reported by the realtime transport."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Record(Protocol):
    """Shape shared by every record that can live in an ordered collection."""

    TABLE: ClassVar[str]
    id: str
    created_at: datetime

    @property
    def ordering_key(self) -> datetime:
        ...

    def scope_value(self, column: str) -> Any:
        ...


@dataclass(frozen=True)
class Profile:
    """Joined profile fields used for denormalized display data."""

    TABLE: ClassVar[str] = "profiles"

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown User"


@dataclass(frozen=True)
class ChatMessage:
    """A chat message enriched with its sender's display fields."""

    TABLE: ClassVar[str] = "chat_messages"

    id: str
    room_id: str
    user_id: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    sender_name: str = "Unknown User"
    sender_avatar: Optional[str] = None

    @property
    def ordering_key(self) -> datetime:
        return self.created_at

    def scope_value(self, column: str) -> Any:
        return getattr(self, column, None)


@dataclass(frozen=True)
class CalendarEvent:
    """A club event shown on the calendar."""

    TABLE: ClassVar[str] = "events"

    id: str
    title: str
    start_datetime: datetime
    end_datetime: datetime
    event_type: str
    is_public: bool
    created_at: datetime
    description: Optional[str] = None
    location_type: Optional[str] = None
    physical_address: Optional[str] = None
    virtual_meeting_url: Optional[str] = None
    attendees_count: int = 0
    image_url: Optional[str] = None

    @property
    def ordering_key(self) -> datetime:
        return self.start_datetime

    def scope_value(self, column: str) -> Any:
        return getattr(self, column, None)


CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})


@dataclass(frozen=True)
class EventRegistration:
    """A member's registration for an event."""

    TABLE: ClassVar[str] = "event_registrations"

    id: str
    event_id: str
    user_id: str
    status: str
    registered_at: datetime
    role: Optional[str] = None
    user_company: Optional[str] = None

    @property
    def created_at(self) -> datetime:
        return self.registered_at

    @property
    def ordering_key(self) -> datetime:
        return self.registered_at

    @property
    def is_active(self) -> bool:
        return self.status not in CANCELLED_STATUSES

    def scope_value(self, column: str) -> Any:
        return getattr(self, column, None)


@dataclass(frozen=True)
class ChatRoom:
    """Chat room metadata (not live)."""

    TABLE: ClassVar[str] = "chat_rooms"

    id: str
    name: str
    created_at: datetime
    description: Optional[str] = None
    is_private: bool = False
    status: str = "active"
    created_by: Optional[str] = None

    @property
    def ordering_key(self) -> datetime:
        return self.created_at

    def scope_value(self, column: str) -> Any:
        return getattr(self, column, None)


@dataclass(frozen=True)
class ChangeEvent:
    """A server-pushed notification that one row changed. Consumed once."""

    operation: Operation
    table: str
    record_id: str
    schema: str = "public"
    commit_timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Filter:
    """A single column predicate, e.g. ``room_id eq <id>``."""

    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class Query:
    """Read query against one table of the relational store."""

    table: str
    filters: Tuple[Filter, ...] = ()
    any_of: Tuple[Filter, ...] = ()
    order_by: Optional[str] = None
    ascending: bool = True
    limit: Optional[int] = None
    columns: Optional[str] = None


@dataclass(frozen=True)
class Notice:
    """A user-facing toast: loading errors, connectivity warnings, results."""

    level: str
    title: str
    description: str = ""
