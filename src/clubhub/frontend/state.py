"""State container for the signed-in member and the open views."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionState:
    user_id: str | None = None
    room_id: str | None = None
    month: tuple[int, int] | None = None
