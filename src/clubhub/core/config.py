"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HttpConfig:
    """REST client settings."""

    timeout: float = 10.0


@dataclass(frozen=True)
class RealtimeConfig:
    """Realtime channel settings."""

    heartbeat_interval: float = 25.0
    join_timeout: float = 10.0
