"""Event calendar: live month view plus registration actions.

Inserts into the month (or into the member's registrations) are merged by
id like any live collection. Updates and deletes on either table reload both
snapshots, since attendee counts and cancellations change existing rows.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from clubhub.core.errors import GatewayError, MutationFailure, RecordValidationError
from clubhub.core.live_collection import Listener, LiveCollection
from clubhub.core.models import CalendarEvent, ChangeEvent, EventRegistration, Filter, Notice, Query
from clubhub.core.ports import GatewayPort, NoticePort
from clubhub.core.scopes import month_scope, shift_month, user_registrations_scope

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalendarSession:
    """Binds one calendar month and the member's registrations to user actions."""

    def __init__(
        self,
        gateway: GatewayPort,
        notices: NoticePort,
        user_id: Optional[str],
        on_change: Optional[Listener] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._notices = notices
        self._user_id = user_id
        self._clock = clock
        self._month: Optional[tuple[int, int]] = None
        self.events = LiveCollection(
            gateway,
            notices,
            label="events",
            on_change=on_change,
            on_other_change=self._on_other_change,
        )
        self.registrations = LiveCollection(
            gateway,
            notices,
            label="registrations",
            on_change=on_change,
            on_other_change=self._on_other_change,
        )

    @property
    def month(self) -> Optional[tuple[int, int]]:
        return self._month

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def calendar_events(self) -> tuple[CalendarEvent, ...]:
        return self.events.items

    async def open_month(self, year: int, month: int) -> None:
        self._month = (year, month)
        await self.events.mount(month_scope(year, month))
        if self._user_id:
            await self.registrations.mount(user_registrations_scope(self._user_id))

    async def shift_month(self, delta: int) -> None:
        if self._month is None:
            now = self._clock()
            year, month = now.year, now.month
        else:
            year, month = self._month
        await self.open_month(*shift_month(year, month, delta))

    async def close(self) -> None:
        await self.events.unmount()
        await self.registrations.unmount()
        self._month = None

    async def refresh(self) -> None:
        await self.events.reload()
        await self.registrations.reload()

    def todays_events(self, now: Optional[datetime] = None) -> list[CalendarEvent]:
        today = (now or self._clock()).date()
        return [event for event in self.events.items if event.start_datetime.date() == today]

    def registered_event_ids(self) -> set[str]:
        return {
            registration.event_id
            for registration in self.registrations.items
            if registration.is_active
        }

    def is_registered(self, event_id: str) -> bool:
        return event_id in self.registered_event_ids()

    async def register(self, event_id: str) -> str:
        """Register the member for an event and return the registration id."""

        if not self._user_id:
            raise MutationFailure("register", "User must be logged in to register")

        try:
            existing = await self._gateway.select(
                Query(
                    table=EventRegistration.TABLE,
                    filters=(
                        Filter("event_id", "eq", event_id),
                        Filter("user_id", "eq", self._user_id),
                    ),
                )
            )
            if existing:
                return existing[0].id

            registration = await self._gateway.insert_record(
                EventRegistration.TABLE,
                {"event_id": event_id, "user_id": self._user_id, "status": "registered"},
            )
        except (GatewayError, RecordValidationError) as exc:
            LOGGER.exception("Error registering for event %s", event_id)
            await self._notices.notify(
                Notice(
                    level="error",
                    title="Registration failed",
                    description=_describe(exc, "Failed to register for event"),
                )
            )
            raise MutationFailure("register", str(exc)) from exc

        # The row is written at this point; counter errors are only logged.
        await self._adjust_attendees("increment", event_id)
        await self._notices.notify(
            Notice(
                level="info",
                title="Success",
                description="You have successfully registered for this event",
            )
        )
        LOGGER.info("Registered %s for event %s", self._user_id, event_id)
        return registration.id

    async def cancel(self, event_id: str) -> None:
        """Remove the member's registration for an event."""

        if not self._user_id:
            raise MutationFailure("cancel", "User must be logged in to cancel")

        try:
            await self._gateway.delete_records(
                EventRegistration.TABLE,
                {"event_id": event_id, "user_id": self._user_id},
            )
        except (GatewayError, RecordValidationError) as exc:
            LOGGER.exception("Error canceling registration for event %s", event_id)
            await self._notices.notify(
                Notice(
                    level="error",
                    title="Cancellation failed",
                    description=_describe(exc, "Failed to cancel registration"),
                )
            )
            raise MutationFailure("cancel", str(exc)) from exc

        await self._adjust_attendees("decrement", event_id)
        await self._notices.notify(
            Notice(
                level="info",
                title="Registration canceled",
                description="You have canceled your registration for this event",
            )
        )
        LOGGER.info("Canceled registration of %s for event %s", self._user_id, event_id)

    async def _adjust_attendees(self, function: str, event_id: str) -> None:
        try:
            await self._gateway.call_rpc(
                function,
                {"table_name": CalendarEvent.TABLE, "column_name": "attendees_count", "row_id": event_id},
            )
        except GatewayError as exc:
            LOGGER.warning("Could not %s attendees for event %s: %s", function, event_id, exc)

    def _on_other_change(self, event: ChangeEvent) -> None:
        LOGGER.debug("%s on %s %s, reloading calendar", event.operation.value, event.table, event.record_id)
        self.events.schedule_reload()
        self.registrations.schedule_reload()


def _describe(exc: Exception, fallback: str) -> str:
    if isinstance(exc, GatewayError):
        return exc.message or fallback
    return fallback
