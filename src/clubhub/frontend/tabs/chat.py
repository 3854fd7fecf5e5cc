"""Chat tab: one live room, a composer and direct messages."""

from __future__ import annotations

from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, Input, RichLog, Static

from clubhub.adapters.formatting import format_chat_line
from clubhub.core.chat import ChatDirectory, ChatRoomSession
from clubhub.core.errors import ClubHubError, MutationFailure

from ..modals import DirectMessageScreen
from ..validators import parse_room_id


class ChatTab(Container):
    """Chat room view bound to a ChatRoomSession."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._session: ChatRoomSession | None = None
        self._directory: ChatDirectory | None = None
        self._rendered: list[str] = []

    def compose(self):
        with Vertical(id="chat-panel"):
            with Horizontal(id="chat-room-bar"):
                yield Input(placeholder="room id", id="room-input")
                yield Button("Join", id="join-room", variant="primary")
                yield Button("DM", id="open-dm")
            yield Static("no room open", id="chat-status", classes="subtle")
            yield RichLog(id="chat-log", markup=True, wrap=True)
            with Horizontal(id="chat-compose"):
                yield Input(placeholder="Type your message...", id="message-input")
                yield Button("Send", id="send-message", variant="success")

    async def on_mount(self) -> None:
        app = self.app
        self._session = ChatRoomSession(
            app.gateway,
            app.notices,
            app.session_state.user_id,
            on_change=self._render_messages,
        )
        self._directory = ChatDirectory(app.gateway)
        self.query_one("#chat-compose").styles.height = 3
        self.query_one("#chat-room-bar").styles.height = 3
        if not app.session_state.user_id:
            self.query_one("#message-input", Input).disabled = True
            self.query_one("#send-message", Button).disabled = True
            self.query_one("#open-dm", Button).disabled = True
        if app.session_state.room_id:
            self.query_one("#room-input", Input).value = app.session_state.room_id
            await self.open_room(app.session_state.room_id)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()

    async def open_room(self, room_id: str) -> None:
        self.app.session_state.room_id = room_id
        self._set_status(f"room: {room_id} | loading...")
        await self._session.open(room_id)
        self._render_messages(self._session.messages)

    @on(Button.Pressed, "#join-room")
    @on(Input.Submitted, "#room-input")
    async def _on_join(self) -> None:
        info = parse_room_id(self.query_one("#room-input", Input).value)
        if info.error or info.normalized is None:
            self._set_status(info.error or "invalid room id")
            return
        await self.open_room(info.normalized)

    @on(Button.Pressed, "#send-message")
    @on(Input.Submitted, "#message-input")
    async def _on_send(self) -> None:
        message_input = self.query_one("#message-input", Input)
        send_button = self.query_one("#send-message", Button)
        if not message_input.value.strip() or self._session.sending:
            return
        message_input.disabled = True
        send_button.disabled = True
        try:
            await self._session.send_message(message_input.value)
        except MutationFailure as exc:
            self._set_status(str(exc))
            return
        finally:
            message_input.disabled = False
            send_button.disabled = False
        # The message shows up once the room's channel delivers it.
        message_input.value = ""
        message_input.focus()

    @on(Button.Pressed, "#open-dm")
    def _on_open_dm(self) -> None:
        self.app.push_screen(DirectMessageScreen(), self._handle_dm_choice)

    def _handle_dm_choice(self, other_user_id: str | None) -> None:
        if not other_user_id:
            return
        self.run_worker(self._open_direct_room(other_user_id), exclusive=True)

    async def _open_direct_room(self, other_user_id: str) -> None:
        try:
            room = await self._directory.get_or_create_direct_room(
                self.app.session_state.user_id, other_user_id
            )
        except ClubHubError as exc:
            self._set_status(f"direct message failed: {exc}")
            return
        self.query_one("#room-input", Input).value = room.id
        await self.open_room(room.id)

    def _render_messages(self, items) -> None:
        log = self.query_one("#chat-log", RichLog)
        ids = [message.id for message in items]
        user_id = self.app.session_state.user_id
        if ids[: len(self._rendered)] == self._rendered and self._rendered:
            new_items = items[len(self._rendered) :]
        else:
            log.clear()
            new_items = items
            if not items:
                log.write("[dim]No messages yet. Start the conversation![/dim]")
        for message in new_items:
            log.write(format_chat_line(message, user_id, mode="markup"))
        self._rendered = ids
        self._refresh_status()

    def _refresh_status(self) -> None:
        session = self._session
        if session is None or session.room_id is None:
            self._set_status("no room open")
            return
        live = session.live
        if live.error:
            self._set_status(f"room: {session.room_id} | {live.error}")
            return
        self._set_status(
            f"room: {session.room_id} | {len(session.messages)} messages | channel: {live.channel_state.value}"
        )

    def _set_status(self, message: str) -> None:
        self.query_one("#chat-status", Static).update(message)
