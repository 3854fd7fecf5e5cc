"""Change-channel subscription for one live scope.

The manager is a one-shot state machine: ``CLOSED -> OPENING -> SUBSCRIBED
-> CLOSED``. Once closed it never reopens; a scope change builds a new
manager. Insert notifications are enriched with a follow-up fetch and the
full record is handed to the owner only while the manager is still current.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from clubhub.core.errors import (
    EnrichmentFailure,
    GatewayError,
    RecordValidationError,
    SubscriptionFailure,
)
from clubhub.core.models import ChangeEvent, Operation, Record
from clubhub.core.ports import (
    CHANNEL_ERROR,
    CLOSED,
    SUBSCRIBED,
    TIMED_OUT,
    ChangeCallback,
    ChannelHandle,
    GatewayPort,
)
from clubhub.core.scopes import ScopeKey

LOGGER = logging.getLogger(__name__)


class ChannelState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    SUBSCRIBED = "subscribed"


class SubscriptionManager:
    """Owns one change channel filtered to one scope."""

    def __init__(
        self,
        gateway: GatewayPort,
        scope: ScopeKey,
        apply: Callable[[Record], None],
        *,
        on_warning: Optional[Callable[[SubscriptionFailure], None]] = None,
        on_other_change: Optional[ChangeCallback] = None,
    ) -> None:
        self._gateway = gateway
        self._scope = scope
        self._apply = apply
        self._on_warning = on_warning
        self._on_other_change = on_other_change
        self._state = ChannelState.CLOSED
        self._handle: Optional[ChannelHandle] = None
        self._started = False
        self._pending: set[asyncio.Task] = set()

    @property
    def scope(self) -> ScopeKey:
        return self._scope

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_current(self) -> bool:
        return self._started and self._state is not ChannelState.CLOSED

    async def open(self) -> None:
        """Open the channel. Calling open() again is a no-op."""

        if self._started:
            return
        if not self._scope.is_valid():
            raise SubscriptionFailure(f"Cannot subscribe to invalid scope {self._scope}")

        self._started = True
        self._state = ChannelState.OPENING
        LOGGER.info("Opening channel %s", self._scope.channel_name)
        try:
            handle = await self._gateway.subscribe(self._scope, self._on_change, self._on_status)
        except GatewayError as exc:
            self._state = ChannelState.CLOSED
            raise SubscriptionFailure(f"Could not open channel {self._scope.channel_name}: {exc}") from exc

        if self._state is ChannelState.CLOSED:
            # close() ran while the subscribe call was in flight.
            await self._gateway.unsubscribe(handle)
            return
        self._handle = handle

    async def close(self) -> None:
        """Tear the channel down. Safe to call any number of times."""

        self._state = ChannelState.CLOSED
        handle, self._handle = self._handle, None
        if handle is None:
            return
        LOGGER.info("Closing channel %s", self._scope.channel_name)
        await self._gateway.unsubscribe(handle)

    async def drain(self) -> None:
        """Wait for in-flight enrichment fetches to settle."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_status(self, status: str, error: Optional[Exception]) -> None:
        if self._state is ChannelState.CLOSED:
            return
        if status == SUBSCRIBED:
            if self._state is ChannelState.OPENING:
                self._state = ChannelState.SUBSCRIBED
                LOGGER.info("Subscribed to %s", self._scope.channel_name)
        elif status in (CHANNEL_ERROR, TIMED_OUT):
            LOGGER.warning("Channel %s reported %s: %s", self._scope.channel_name, status, error)
            if self._on_warning is not None:
                failure = SubscriptionFailure(f"{status} on {self._scope.channel_name}")
                if error is not None:
                    failure.__cause__ = error
                self._on_warning(failure)
        elif status == CLOSED:
            LOGGER.info("Channel %s closed by server", self._scope.channel_name)
            self._state = ChannelState.CLOSED

    def _on_change(self, event: ChangeEvent) -> None:
        if self._state is ChannelState.CLOSED:
            return
        if event.table != self._scope.table:
            return
        if event.operation is not Operation.INSERT:
            if self._on_other_change is not None:
                self._on_other_change(event)
            return

        task = asyncio.get_running_loop().create_task(self._enrich(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _enrich(self, event: ChangeEvent) -> None:
        try:
            record = await self._gateway.fetch_by_id(event.table, event.record_id)
        except (GatewayError, RecordValidationError) as exc:
            failure = EnrichmentFailure(event.table, event.record_id, exc)
            LOGGER.warning("%s", failure, exc_info=exc)
            return

        # The scope may have been torn down while the fetch was in flight.
        if not self.is_current:
            LOGGER.debug("Dropping %s for stale channel %s", record.id, self._scope.channel_name)
            return
        if not self._scope.contains(record):
            LOGGER.debug("Dropping %s outside %s", record.id, self._scope.channel_name)
            return
        try:
            self._apply(record)
        except Exception:
            LOGGER.exception("Error while applying %s to %s", record.id, self._scope.channel_name)
