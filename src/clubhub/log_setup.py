"""Logging configured from the ``logging`` section of config.json.

Credentials named under ``redact.patterns`` are read from the environment and
masked in every line a handler writes, tracebacks included.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MASK = "***"
DEFAULT_LOG_PATH = "logs/clubhub.log"


class MaskingFormatter(logging.Formatter):
    """Formatter that blanks out known credential values."""

    def __init__(self, values: Iterable[str]) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        # Longest first, so a token that contains another is masked whole.
        self.values = sorted({value for value in values if value}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        for value in self.values:
            line = line.replace(value, MASK)
        return line


def secret_values(redact: Mapping, environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """Return the values of the environment variables listed for redaction."""

    if not redact.get("enabled", False):
        return []
    environ = os.environ if environ is None else environ
    return [environ[name] for name in redact.get("patterns", []) if environ.get(name)]


def rotating_file_handler(file_cfg: Mapping, root: str) -> RotatingFileHandler:
    path = file_cfg.get("path") or DEFAULT_LOG_PATH
    if not os.path.isabs(path):
        path = os.path.join(root, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def configure_logging(
    config: Optional[Mapping],
    root: str,
    environ: Optional[Mapping[str, str]] = None,
) -> list[logging.Handler]:
    """Attach the configured handlers to the root logger and return them.

    Nothing is attached when logging is disabled or no output is enabled.
    """

    config = config or {}
    if not config.get("enabled", False):
        return []

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file") or {}
    if file_cfg.get("enabled", False):
        handlers.append(rotating_file_handler(file_cfg, root))
    if not handlers:
        return []

    level = logging.getLevelName(str(config.get("level", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    formatter = MaskingFormatter(secret_values(config.get("redact") or {}, environ))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    return handlers
