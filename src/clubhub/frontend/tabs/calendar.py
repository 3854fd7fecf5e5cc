"""Calendar tab for browsing a month of events and managing registrations."""

from __future__ import annotations

import csv
from datetime import datetime
from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from clubhub.adapters.formatting import CSV_HEADERS, event_export_row, format_event_row
from clubhub.core.calendar import CalendarSession
from clubhub.core.errors import MutationFailure

from ..constants import EXPORTS_DIR
from ..modals import CancelRegistrationScreen


class CalendarTab(Container):
    """Month view bound to a CalendarSession."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._session: CalendarSession | None = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="calendar-panel"):
            with Horizontal(id="calendar-nav"):
                yield Button("<", id="prev-month")
                yield Static("", id="calendar-title")
                yield Button(">", id="next-month")
            yield DataTable(id="calendar-table", cursor_type="row")
            with Horizontal(id="calendar-actions"):
                yield Button("Register", id="register-event", variant="success")
                yield Button("Cancel registration", id="cancel-event", variant="error")
                yield Button("Refresh", id="refresh-events")
                yield Button("Export CSV", id="export-events")
            yield Static("", id="calendar-output")

    async def on_mount(self) -> None:
        table = self.query_one("#calendar-table", DataTable)
        table.add_column("when", key="when", width=30)
        table.add_column("title", key="title", width=36)
        table.add_column("type", key="event_type", width=14)
        table.add_column("attending", key="attendees", width=10)
        table.add_column("registered", key="registered", width=10)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self.query_one("#calendar-actions").styles.height = 3
        self.query_one("#calendar-nav").styles.height = 3
        self._table_ready = True

        app = self.app
        if not app.session_state.user_id:
            self.query_one("#register-event", Button).disabled = True
            self.query_one("#cancel-event", Button).disabled = True
        self._session = CalendarSession(
            app.gateway,
            app.notices,
            app.session_state.user_id,
            on_change=self._on_collection_change,
        )
        if app.session_state.month is not None:
            await self._session.open_month(*app.session_state.month)
        else:
            await self._session.shift_month(0)
        self._render_events()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()

    @on(Button.Pressed, "#prev-month")
    async def _on_prev_month(self) -> None:
        await self._session.shift_month(-1)
        self._render_events()

    @on(Button.Pressed, "#next-month")
    async def _on_next_month(self) -> None:
        await self._session.shift_month(1)
        self._render_events()

    @on(Button.Pressed, "#refresh-events")
    async def _on_refresh(self) -> None:
        await self._session.refresh()
        self._render_events()

    @on(Button.Pressed, "#register-event")
    async def _on_register(self) -> None:
        event = self._selected_event()
        if event is None:
            self._set_output("Select an event first.")
            return
        try:
            await self._session.register(event.id)
        except MutationFailure as exc:
            self._set_output(str(exc))
            return
        self._set_output(f"registered for {event.title}")

    @on(Button.Pressed, "#cancel-event")
    def _on_cancel(self) -> None:
        event = self._selected_event()
        if event is None:
            self._set_output("Select an event first.")
            return
        if not self._session.is_registered(event.id):
            self._set_output("You are not registered for this event.")
            return

        def _handle_choice(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._cancel_registration(event.id, event.title), exclusive=True)

        self.app.push_screen(CancelRegistrationScreen(event.title), _handle_choice)

    @on(Button.Pressed, "#export-events")
    def _on_export(self) -> None:
        events = self._session.calendar_events if self._session else ()
        if not events:
            self._set_output("No events to export.")
            return
        EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
        year, month = self._session.month
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = EXPORTS_DIR / f"events-{year}-{month:02d}-{timestamp}.csv"
        try:
            with path.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.DictWriter(handle, fieldnames=CSV_HEADERS)
                writer.writeheader()
                writer.writerows(event_export_row(event) for event in events)
            self._set_output(f"exported {len(events)} events to {path}")
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")

    async def _cancel_registration(self, event_id: str, title: str) -> None:
        try:
            await self._session.cancel(event_id)
        except MutationFailure as exc:
            self._set_output(str(exc))
            return
        self._set_output(f"canceled registration for {title}")

    def _on_collection_change(self, _items) -> None:
        self._render_events()

    def _render_events(self) -> None:
        if not self._table_ready or self._session is None:
            return
        table = self.query_one("#calendar-table", DataTable)
        table.clear()
        registered = self._session.registered_event_ids()
        for event in self._session.calendar_events:
            table.add_row(*format_event_row(event, event.id in registered), key=event.id)

        month = self._session.month
        if month is not None:
            self.app.session_state.month = month
            self.query_one("#calendar-title", Static).update(f"{month[0]}-{month[1]:02d}")
        live = self._session.events
        if live.error:
            self._set_output(live.error)
        else:
            self._set_output(f"{len(self._session.calendar_events)} events | channel: {live.channel_state.value}")

    def _selected_event(self):
        if self._session is None:
            return None
        table = self.query_one("#calendar-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        for event in self._session.calendar_events:
            if event.id == row_key.value:
                return event
        return None

    def _set_output(self, message: str) -> None:
        self.query_one("#calendar-output", Static).update(message)
