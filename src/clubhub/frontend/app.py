"""Main Textual app for the clubhub member console."""

from __future__ import annotations

from typing import Any, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import ContentSwitcher, Footer, Static, Tab, Tabs

from clubhub import __version__
from clubhub.core.ports import GatewayPort

from .constants import CLUB_ORANGE
from .notices import TextualNoticeSink
from .state import SessionState
from .tabs.calendar import CalendarTab
from .tabs.chat import ChatTab


class ClubHubApp(App):
    """Member console with a live chat room and the event calendar."""

    def __init__(
        self,
        gateway: GatewayPort,
        user_id: Optional[str] = None,
        room_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.gateway = gateway
        self.notices = TextualNoticeSink(self)
        self.session_state = SessionState(user_id=user_id, room_id=room_id)

    BINDINGS = [
        ("q", "request_quit", "Quit"),
        ("ctrl+c", "request_quit", "Quit"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }

    #header {
        height: 4;
        padding: 0 1;
        border-bottom: solid #F97316;
    }

    #header-row {
        height: 100%;
    }

    #header-left {
        width: 1fr;
    }

    #header-right {
        width: auto;
        align-horizontal: right;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: $text-muted;
    }

    #tabs-bar {
        height: 3;
    }

    #content {
        height: 1fr;
    }

    #chat-panel,
    #calendar-panel {
        height: 1fr;
        padding: 0 1;
    }

    #room-input,
    #message-input {
        width: 1fr;
    }

    #chat-log {
        height: 1fr;
        border: round $panel;
    }

    #calendar-title {
        width: 1fr;
        content-align: center middle;
        text-style: bold;
    }

    #calendar-output,
    #chat-status {
        height: 1;
    }

    ModalScreen {
        align: center middle;
    }

    .modal-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick #F97316;
        background: $surface;
    }

    .modal-title {
        text-style: bold;
        padding-bottom: 1;
    }

    .modal-error {
        color: $error;
    }

    .modal-actions {
        height: 3;
        align-horizontal: right;
    }
    """

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static(f"v{__version__}", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static(self._member_text(), id="header-member", classes="subtle")

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Chat", id="chat"),
                    Tab("Calendar", id="calendar"),
                    id="tabs",
                )

        with ContentSwitcher(id="content"):
            yield ChatTab(id="chat")
            yield CalendarTab(id="calendar")
        yield Footer()

    def on_mount(self) -> None:
        self._set_active_tab("chat")

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            label = event.tab.label
            if hasattr(label, "plain"):
                label = label.plain
            tab_id = str(label).strip().lower()
        self._set_active_tab(tab_id)

    def _set_active_tab(self, tab_id: str) -> None:
        switcher = self.query_one("#content", ContentSwitcher)
        switcher.current = tab_id

    async def action_request_quit(self) -> None:
        await self.shutdown_sessions()
        self.exit()

    async def shutdown_sessions(self) -> None:
        """Close every live channel, then the gateway's connections."""
        await self.query_one(ChatTab).close()
        await self.query_one(CalendarTab).close()
        await self.gateway.aclose()

    def _member_text(self) -> str:
        if self.session_state.user_id:
            return f"member: {self.session_state.user_id}"
        return "member: signed out (read only)"

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("CLUB", CLUB_ORANGE),
            ("HUB > Member Console", "bold"),
        )
