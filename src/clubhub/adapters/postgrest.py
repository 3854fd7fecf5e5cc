"""REST adapter for the backend's relational API.

Thin httpx wrapper that turns core ``Query`` objects into filter parameters
and translates every HTTP or transport failure into ``GatewayError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from clubhub.core.errors import GatewayError, RecordNotFound
from clubhub.core.models import Filter, Query

LOGGER = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"
NO_ROWS_CODE = "PGRST116"
OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte"})


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _encode_filter(item: Filter) -> str:
    if item.op not in OPERATORS:
        raise ValueError(f"Unsupported filter operator: {item.op}")
    return f"{item.op}.{_encode_value(item.value)}"


def build_params(query: Query, default_columns: str = "*") -> list[tuple[str, str]]:
    """Return the query string pairs for a select request."""

    params: list[tuple[str, str]] = [("select", query.columns or default_columns)]
    for item in query.filters:
        params.append((item.column, _encode_filter(item)))
    if query.any_of:
        alternatives = ",".join(f"{item.column}.{_encode_filter(item)}" for item in query.any_of)
        params.append(("or", f"({alternatives})"))
    if query.order_by:
        direction = "asc" if query.ascending else "desc"
        params.append(("order", f"{query.order_by}.{direction}"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


def _match_params(match: dict[str, Any]) -> list[tuple[str, str]]:
    return [(column, f"eq.{_encode_value(value)}") for column, value in match.items()]


class RestClient:
    """Async client for ``{url}/rest/v1``."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def select(self, query: Query, default_columns: str = "*") -> list[dict[str, Any]]:
        params = build_params(query, default_columns)
        data = await self._request("GET", f"/{query.table}", params=params)
        return data if isinstance(data, list) else []

    async def select_single(self, table: str, column: str, value: Any, columns: str = "*") -> dict[str, Any]:
        params = [("select", columns), (column, f"eq.{_encode_value(value)}")]
        return await self._request(
            "GET",
            f"/{table}",
            params=params,
            headers={"Accept": SINGLE_OBJECT},
        )

    async def insert(self, table: str, payload: dict[str, Any], columns: str = "*") -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/{table}",
            params=[("select", columns)],
            json_body=payload,
            headers={"Accept": SINGLE_OBJECT, "Prefer": "return=representation"},
        )

    async def delete(self, table: str, match: dict[str, Any]) -> None:
        if not match:
            raise ValueError("delete requires at least one match column")
        await self._request("DELETE", f"/{table}", params=_match_params(match))

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        return await self._request("POST", f"/rpc/{function}", json_body=params)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[list[tuple[str, str]]] = None,
        json_body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json_body, headers=headers)
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise self._error_from_response(method, path, response)
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise GatewayError(f"{method} {path} returned invalid JSON", status=response.status_code) from exc

    @staticmethod
    def _error_from_response(method: str, path: str, response: httpx.Response) -> GatewayError:
        code = None
        message = response.reason_phrase or "request failed"
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or message
        LOGGER.debug("%s %s -> %s %s", method, path, response.status_code, message)
        if code == NO_ROWS_CODE:
            return RecordNotFound(message, status=response.status_code, code=code)
        return GatewayError(message, status=response.status_code, code=code)
