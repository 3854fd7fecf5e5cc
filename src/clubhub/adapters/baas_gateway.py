"""Remote data gateway adapter.

Implements the core GatewayPort on top of the REST and realtime clients,
mapping every row to its tagged record type at this boundary.
"""

from __future__ import annotations

import logging
from typing import Any

from clubhub.adapters.postgrest import RestClient
from clubhub.adapters.realtime import RealtimeChannel, RealtimeClient, parse_change
from clubhub.adapters.record_mapper import ORDER_COLUMNS, SELECT_COLUMNS, map_row, map_rows
from clubhub.core.models import Query
from clubhub.core.ports import ChangeCallback, StatusCallback
from clubhub.core.scopes import ScopeKey

LOGGER = logging.getLogger(__name__)


class BaasGateway:
    """GatewayPort backed by the hosted backend's REST and realtime APIs."""

    def __init__(self, rest: RestClient, realtime: RealtimeClient, schema: str = "public") -> None:
        self._rest = rest
        self._realtime = realtime
        self._schema = schema

    async def aclose(self) -> None:
        await self._realtime.close()
        await self._rest.aclose()

    async def fetch_collection(self, scope: ScopeKey) -> list[Any]:
        query = scope.to_query(order_by=ORDER_COLUMNS.get(scope.table))
        return await self.select(query)

    async def fetch_by_id(self, table: str, record_id: str) -> Any:
        row = await self._rest.select_single(table, "id", record_id, self._columns(table))
        return map_row(table, row)

    async def select(self, query: Query) -> list[Any]:
        rows = await self._rest.select(query, self._columns(query.table))
        return map_rows(query.table, rows)

    async def insert_record(self, table: str, payload: dict[str, Any]) -> Any:
        row = await self._rest.insert(table, payload, self._columns(table))
        return map_row(table, row)

    async def delete_records(self, table: str, match: dict[str, Any]) -> None:
        await self._rest.delete(table, match)

    async def call_rpc(self, function: str, params: dict[str, Any]) -> Any:
        return await self._rest.rpc(function, params)

    async def subscribe(
        self,
        scope: ScopeKey,
        on_change: ChangeCallback,
        on_status: StatusCallback,
    ) -> RealtimeChannel:
        binding: dict[str, Any] = {"event": "*", "schema": self._schema, "table": scope.table}
        if scope.realtime_filter:
            binding["filter"] = scope.realtime_filter

        def _deliver(data: dict[str, Any]) -> None:
            event = parse_change(data)
            if event is None:
                LOGGER.debug("Ignoring unparseable change on %s", scope.channel_name)
                return
            on_change(event)

        channel = RealtimeChannel(
            name=scope.channel_name,
            changes=[binding],
            on_change=_deliver,
            on_status=on_status,
        )
        await self._realtime.join(channel)
        return channel

    async def unsubscribe(self, handle: RealtimeChannel) -> None:
        await self._realtime.leave(handle)

    @staticmethod
    def _columns(table: str) -> str:
        return SELECT_COLUMNS.get(table, "*")
