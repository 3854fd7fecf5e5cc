"""Modal dialogs for the clubhub terminal UI."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static

from .validators import parse_user_id


class CancelRegistrationScreen(ModalScreen[bool]):
    """Confirm cancelling a registration."""

    def __init__(self, event_title: str) -> None:
        super().__init__()
        self._event_title = event_title or "(untitled event)"

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Cancel registration?", classes="modal-title"),
            Static(self._event_title, classes="modal-body"),
            Horizontal(
                Button("Cancel registration", id="cancel-confirm", variant="error"),
                Button("Keep", id="cancel-keep"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel-confirm":
            self.dismiss(True)
        else:
            self.dismiss(False)


class DirectMessageScreen(ModalScreen[str | None]):
    """Ask for the member to open a private chat with."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Direct message", classes="modal-title"),
            Static("", id="dm-error", classes="modal-error"),
            Static("member user id", classes="form-label"),
            Input(placeholder="00000000-0000-0000-0000-000000000000", id="dm-user-id"),
            Horizontal(
                Button("Open", id="dm-confirm", variant="success"),
                Button("Cancel", id="dm-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "dm-cancel":
            self.dismiss(None)
            return
        if event.button.id != "dm-confirm":
            return
        info = parse_user_id(self.query_one("#dm-user-id", Input).value)
        if info.error or info.normalized is None:
            self.query_one("#dm-error", Static).update(info.error or "invalid user id")
            return
        self.dismiss(info.normalized)
