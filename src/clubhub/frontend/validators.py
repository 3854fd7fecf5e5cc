"""Validation helpers for user-entered room ids, user ids and months."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass
class IdInfo:
    normalized: str | None
    error: str | None = None


@dataclass
class MonthInfo:
    year: int | None
    month: int | None
    error: str | None = None


def parse_uuid(raw_value: str, label: str) -> IdInfo:
    raw_value = (raw_value or "").strip()
    if not raw_value:
        return IdInfo(None, f"{label} is required")
    try:
        return IdInfo(str(uuid.UUID(raw_value)))
    except ValueError:
        return IdInfo(None, f"{label} must be a UUID")


def parse_room_id(raw_value: str) -> IdInfo:
    return parse_uuid(raw_value, "room id")


def parse_user_id(raw_value: str) -> IdInfo:
    return parse_uuid(raw_value, "user id")


def parse_month(raw_value: Optional[str], today: Optional[date] = None) -> MonthInfo:
    """Parse ``YYYY-MM``; an empty value means the current month."""

    raw_value = (raw_value or "").strip()
    if not raw_value:
        today = today or date.today()
        return MonthInfo(today.year, today.month)

    match = _MONTH_RE.match(raw_value)
    if not match:
        return MonthInfo(None, None, "month must look like YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return MonthInfo(None, None, "month must be between 01 and 12")
    return MonthInfo(year, month)
