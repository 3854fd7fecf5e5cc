"""Realtime channel adapter.

Speaks the backend's Phoenix-channel JSON protocol over one shared websocket.
Each logical channel joins with a ``postgres_changes`` binding and receives
row change notifications until it leaves. There is no automatic reconnect:
a lost connection is reported to every open channel as a channel error.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from clubhub.core.config import RealtimeConfig
from clubhub.core.errors import GatewayError
from clubhub.core.models import ChangeEvent, Operation
from clubhub.core.ports import CHANNEL_ERROR, CLOSED, SUBSCRIBED, TIMED_OUT

LOGGER = logging.getLogger(__name__)

PROTOCOL_VERSION = "1.0.0"
PHOENIX_TOPIC = "phoenix"


def realtime_endpoint(url: str, api_key: str) -> str:
    """Return the websocket endpoint for a project URL."""

    base = url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    query = urlencode({"apikey": api_key, "vsn": PROTOCOL_VERSION})
    return f"{base}/realtime/v1/websocket?{query}"


def encode_message(
    topic: str,
    event: str,
    payload: dict[str, Any],
    ref: Optional[str],
    join_ref: Optional[str] = None,
) -> str:
    return json.dumps(
        {"topic": topic, "event": event, "payload": payload, "ref": ref, "join_ref": join_ref}
    )


def parse_change(data: dict[str, Any]) -> Optional[ChangeEvent]:
    """Build a ChangeEvent from a ``postgres_changes`` data payload."""

    try:
        operation = Operation(data.get("type") or data.get("eventType"))
    except ValueError:
        return None
    record = data.get("record") or {}
    old_record = data.get("old_record") or {}
    record_id = record.get("id") or old_record.get("id")
    table = data.get("table")
    if not record_id or not table:
        return None
    return ChangeEvent(
        operation=operation,
        table=str(table),
        record_id=str(record_id),
        schema=str(data.get("schema") or "public"),
    )


@dataclass
class RealtimeChannel:
    """One joined topic and its callbacks."""

    name: str
    changes: list[dict[str, Any]]
    on_change: Callable[[dict[str, Any]], None]
    on_status: Callable[[str, Optional[Exception]], None]
    join_ref: Optional[str] = None
    joined: bool = False
    closed: bool = False
    _timeout: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @property
    def topic(self) -> str:
        # The join ref keeps handles on the same scope on separate topics.
        if self.join_ref is None:
            return f"realtime:{self.name}"
        return f"realtime:{self.name}:{self.join_ref}"

    def cancel_timeout(self) -> None:
        if self._timeout is not None:
            self._timeout.cancel()
            self._timeout = None


class RealtimeClient:
    """Shared websocket connection multiplexing many channels."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        config: RealtimeConfig = RealtimeConfig(),
        connect: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._endpoint = realtime_endpoint(url, api_key)
        self._access_token = access_token or api_key
        self._config = config
        self._connect = connect or websockets.connect
        self._socket: Any = None
        self._channels: dict[str, RealtimeChannel] = {}
        self._ref = 0
        self._reader: Optional[asyncio.Task] = None
        self._heartbeat: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._socket is not None

    def channel(self, topic: str) -> Optional[RealtimeChannel]:
        return self._channels.get(topic)

    async def connect(self) -> None:
        if self._socket is not None:
            return
        LOGGER.info("Connecting to realtime endpoint")
        try:
            self._socket = await self._connect(self._endpoint)
        except (OSError, WebSocketException) as exc:
            raise GatewayError(f"Realtime connection failed: {exc}") from exc
        loop = asyncio.get_running_loop()
        self._reader = loop.create_task(self._read_loop())
        self._heartbeat = loop.create_task(self._heartbeat_loop())

    async def join(self, channel: RealtimeChannel) -> None:
        """Send ``phx_join``; the status callback reports the outcome."""

        await self.connect()
        channel.join_ref = self._next_ref()
        self._channels[channel.topic] = channel
        payload = {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": channel.changes,
            },
            "access_token": self._access_token,
        }
        try:
            await self._send(channel.topic, "phx_join", payload, channel.join_ref, channel.join_ref)
        except GatewayError:
            self._channels.pop(channel.topic, None)
            raise
        channel._timeout = asyncio.get_running_loop().call_later(
            self._config.join_timeout, self._join_timed_out, channel
        )

    async def leave(self, channel: RealtimeChannel) -> None:
        """Leave a channel. Leaving twice is a no-op."""

        if channel.closed:
            return
        channel.closed = True
        channel.cancel_timeout()
        if self._channels.get(channel.topic) is channel:
            del self._channels[channel.topic]
        if self._socket is None:
            return
        try:
            await self._send(channel.topic, "phx_leave", {}, self._next_ref(), channel.join_ref)
        except GatewayError:
            LOGGER.debug("Socket gone while leaving %s", channel.topic)

    async def close(self) -> None:
        for task in (self._heartbeat, self._reader):
            if task is not None:
                task.cancel()
        self._heartbeat = self._reader = None
        for channel in list(self._channels.values()):
            channel.closed = True
            channel.cancel_timeout()
        self._channels.clear()
        socket, self._socket = self._socket, None
        if socket is not None:
            await socket.close()
            LOGGER.info("Realtime connection closed")

    def dispatch(self, raw: Any) -> None:
        """Route one inbound frame to its channel."""

        try:
            message = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring malformed realtime frame")
            return
        if not isinstance(message, dict):
            return

        channel = self._channels.get(message.get("topic"))
        if channel is None:
            return
        event = message.get("event")
        payload = message.get("payload") or {}

        try:
            if event == "phx_reply" and message.get("ref") == channel.join_ref:
                self._handle_join_reply(channel, payload)
            elif event == "postgres_changes":
                data = payload.get("data")
                if isinstance(data, dict):
                    channel.on_change(data)
            elif event == "phx_error":
                channel.on_status(CHANNEL_ERROR, GatewayError(f"Channel {channel.name} errored"))
            elif event == "phx_close":
                channel.closed = True
                channel.cancel_timeout()
                self._channels.pop(channel.topic, None)
                channel.on_status(CLOSED, None)
            elif event == "system" and payload.get("status") == "error":
                channel.on_status(CHANNEL_ERROR, GatewayError(str(payload.get("message") or "system error")))
        except Exception:
            LOGGER.exception("Error while handling %s on %s", event, channel.topic)

    def _handle_join_reply(self, channel: RealtimeChannel, payload: dict[str, Any]) -> None:
        channel.cancel_timeout()
        if payload.get("status") == "ok":
            channel.joined = True
            channel.on_status(SUBSCRIBED, None)
            return
        response = payload.get("response") or {}
        reason = response.get("reason") if isinstance(response, dict) else response
        channel.on_status(CHANNEL_ERROR, GatewayError(f"Join rejected: {reason or 'unknown'}"))

    def _join_timed_out(self, channel: RealtimeChannel) -> None:
        channel._timeout = None
        if channel.joined or channel.closed:
            return
        channel.on_status(TIMED_OUT, None)

    def _next_ref(self) -> str:
        self._ref += 1
        return str(self._ref)

    async def _send(
        self,
        topic: str,
        event: str,
        payload: dict[str, Any],
        ref: Optional[str],
        join_ref: Optional[str] = None,
    ) -> None:
        if self._socket is None:
            raise GatewayError("Realtime socket is not connected")
        try:
            await self._socket.send(encode_message(topic, event, payload, ref, join_ref))
        except (ConnectionClosed, OSError) as exc:
            raise GatewayError(f"Realtime send failed: {exc}") from exc

    async def _read_loop(self) -> None:
        socket = self._socket
        error: Optional[Exception] = None
        try:
            async for raw in socket:
                self.dispatch(raw)
        except ConnectionClosed as exc:
            error = exc
            LOGGER.warning("Realtime connection lost: %s", exc)
        if self._socket is not socket:
            return
        # No reconnect: every open channel learns about the lost connection.
        self._socket = None
        if self._heartbeat is not None:
            self._heartbeat.cancel()
        for channel in list(self._channels.values()):
            channel.on_status(CHANNEL_ERROR, GatewayError(f"Realtime connection lost: {error or 'closed'}"))

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.heartbeat_interval)
            try:
                await self._send(PHOENIX_TOPIC, "heartbeat", {}, self._next_ref())
            except GatewayError:
                LOGGER.warning("Realtime heartbeat failed")
                return
