"""Static configuration for clubhub.

All user-editable settings (timeouts, realtime tuning, default room, logging)
live in a single JSON file for quick edits without touching Python.
"""

import json
import os

from clubhub.core.config import HttpConfig, RealtimeConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

# CLUBHUB_CONFIG points at an alternative file, e.g. per deployment.
CONFIG_PATH = os.getenv("CLUBHUB_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# REST timeout applies to snapshot loads, enrichment fetches and mutations.
_http = _CONFIG.get("http", {})
HTTP = HttpConfig(timeout=float(_http.get("timeout", 10.0)))

# Realtime tuning:
# - heartbeat_interval: seconds between keep-alive frames
# - join_timeout: seconds before an unacknowledged join reports TIMED_OUT
_realtime = _CONFIG.get("realtime", {})
REALTIME = RealtimeConfig(
    heartbeat_interval=float(_realtime.get("heartbeat_interval", 25.0)),
    join_timeout=float(_realtime.get("join_timeout", 10.0)),
)

# Room opened by the chat tab when none is given on the command line.
_chat = _CONFIG.get("chat", {})
DEFAULT_ROOM = _chat.get("default_room") or None

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
