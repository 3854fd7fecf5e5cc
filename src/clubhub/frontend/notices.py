"""Notice sink that shows core notices as Textual toasts."""

from __future__ import annotations

from textual.app import App

from clubhub.core.models import Notice

_SEVERITY = {"info": "information", "warning": "warning", "error": "error"}


class TextualNoticeSink:
    """NoticePort backed by ``App.notify``."""

    def __init__(self, app: App) -> None:
        self._app = app

    async def notify(self, notice: Notice) -> None:
        self._app.notify(
            notice.description or notice.title,
            title=notice.title,
            severity=_SEVERITY.get(notice.level, "information"),
        )
