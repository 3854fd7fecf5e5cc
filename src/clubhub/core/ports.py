"""Ports (interfaces) used by the live-collection core.

Ports define the minimal contracts for the remote data gateway and the
user-facing notice sink so that the core can be reused with different
backends and frontends, and exercised with test doubles.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from clubhub.core.models import ChangeEvent, Notice, Query, Record
from clubhub.core.scopes import ScopeKey

ChangeCallback = Callable[[ChangeEvent], None]
StatusCallback = Callable[[str, Optional[Exception]], None]

# Channel statuses reported through StatusCallback.
SUBSCRIBED = "SUBSCRIBED"
CHANNEL_ERROR = "CHANNEL_ERROR"
TIMED_OUT = "TIMED_OUT"
CLOSED = "CLOSED"


class ChannelHandle(Protocol):
    """Opaque handle for one logical change channel."""

    name: str


class GatewayPort(Protocol):
    """Remote data operations required by the core.

    Implementations map raw rows to tagged record types and raise
    ``GatewayError`` (or ``RecordValidationError``) on failure.
    """

    async def fetch_collection(self, scope: ScopeKey) -> list[Record]:
        ...

    async def fetch_by_id(self, table: str, record_id: str) -> Record:
        ...

    async def select(self, query: Query) -> list[Record]:
        ...

    async def insert_record(self, table: str, payload: dict[str, Any]) -> Record:
        ...

    async def delete_records(self, table: str, match: dict[str, Any]) -> None:
        ...

    async def call_rpc(self, function: str, params: dict[str, Any]) -> Any:
        ...

    async def subscribe(
        self,
        scope: ScopeKey,
        on_change: ChangeCallback,
        on_status: StatusCallback,
    ) -> ChannelHandle:
        ...

    async def unsubscribe(self, handle: ChannelHandle) -> None:
        ...


class NoticePort(Protocol):
    """Delivers user-facing notices (toasts) from the core."""

    async def notify(self, notice: Notice) -> None:
        ...
