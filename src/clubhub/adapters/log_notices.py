"""Notice adapters for headless use.

The terminal UI shows notices as toasts; the CLI writes them to the log and,
when a console is attached, prints them inline with the live output.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from rich.console import Console

from clubhub.adapters.formatting import format_notice
from clubhub.core.models import Notice

LOGGER = logging.getLogger(__name__)

HISTORY_SIZE = 50

_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


class LoggingNoticeSink:
    """NoticePort that writes every notice to the log."""

    def __init__(self, console: Optional[Console] = None, history_size: int = HISTORY_SIZE) -> None:
        self._console = console
        self.history: deque[Notice] = deque(maxlen=history_size)

    async def notify(self, notice: Notice) -> None:
        self.history.append(notice)
        LOGGER.log(_LEVELS.get(notice.level, logging.INFO), "%s", format_notice(notice))
        if self._console is not None:
            self._console.print(format_notice(notice, mode="markup"))
