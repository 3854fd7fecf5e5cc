"""Helpers for working with live-collection scope keys.

A scope identifies which rows one live collection covers: either an equality
on a foreign key (a chat room's messages) or an inclusive datetime range (a
calendar month's events).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

from clubhub.core.models import ChatMessage, CalendarEvent, EventRegistration, Filter, Query


@dataclass(frozen=True)
class ScopeKey:
    """Immutable key for one live collection."""

    table: str
    column: str
    value: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_range(self) -> bool:
        return self.start is not None or self.end is not None

    def is_valid(self) -> bool:
        """Return True when the key can be queried and subscribed."""

        if not self.table or not self.column:
            return False
        if self.is_range:
            if self.value is not None or self.start is None or self.end is None:
                return False
            return self.start <= self.end
        return bool(self.value)

    def contains(self, record: Any) -> bool:
        """Return True when ``record`` belongs to this scope."""

        if getattr(record, "TABLE", None) != self.table:
            return False
        ref = record.scope_value(self.column)
        if ref is None:
            return False
        if self.is_range:
            return self.start <= ref <= self.end
        return str(ref) == self.value

    def filters(self) -> Tuple[Filter, ...]:
        """Return the query predicates that select this scope's rows."""

        if self.is_range:
            return (
                Filter(self.column, "gte", self.start.isoformat()),
                Filter(self.column, "lte", self.end.isoformat()),
            )
        return (Filter(self.column, "eq", self.value),)

    def to_query(self, order_by: Optional[str] = None) -> Query:
        return Query(table=self.table, filters=self.filters(), order_by=order_by)

    @property
    def realtime_filter(self) -> Optional[str]:
        """Server-side change filter, or None when filtering happens client-side."""

        # The change feed only accepts a single predicate, so ranges subscribe
        # to the whole table and rely on contains().
        if self.is_range:
            return None
        return f"{self.column}=eq.{self.value}"

    @property
    def channel_name(self) -> str:
        if self.is_range:
            return f"{self.table}-{self.start:%Y%m%d}-{self.end:%Y%m%d}"
        return f"{self.table}-{self.column}-{self.value}"


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """Return the first and last instant of a month in UTC."""

    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, tzinfo=timezone.utc) + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move ``delta`` months forward (or back) from year/month."""

    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def room_scope(room_id: Optional[str]) -> ScopeKey:
    return ScopeKey(ChatMessage.TABLE, "room_id", value=room_id or None)


def month_scope(year: int, month: int) -> ScopeKey:
    start, end = month_bounds(year, month)
    return ScopeKey(CalendarEvent.TABLE, "start_datetime", start=start, end=end)


def user_registrations_scope(user_id: Optional[str]) -> ScopeKey:
    return ScopeKey(EventRegistration.TABLE, "user_id", value=user_id or None)
