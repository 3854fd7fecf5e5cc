"""Snapshot loading for live collections."""

from __future__ import annotations

import logging
from typing import Optional

from clubhub.core.errors import GatewayError, LoadFailure, RecordValidationError
from clubhub.core.models import Record
from clubhub.core.ports import GatewayPort
from clubhub.core.reconcile import merge
from clubhub.core.scopes import ScopeKey

LOGGER = logging.getLogger(__name__)


class SnapshotLoader:
    """Fetch the current ordered collection for a scope."""

    def __init__(self, gateway: GatewayPort) -> None:
        self._gateway = gateway

    async def load(self, scope: Optional[ScopeKey]) -> tuple[Record, ...]:
        """Return the scope's records sorted by their ordering timestamp.

        A missing or invalid scope yields an empty collection so callers can
        show an empty state. Query failures raise ``LoadFailure``.
        """

        if scope is None or not scope.is_valid():
            LOGGER.debug("Skipping snapshot for invalid scope %s", scope)
            return ()

        try:
            records = await self._gateway.fetch_collection(scope)
        except (GatewayError, RecordValidationError) as exc:
            raise LoadFailure(f"Could not load {scope.table} for {scope.channel_name}: {exc}") from exc

        # The gateway already orders rows; the stable sort keeps the guarantee
        # independent of the backend and merge() drops duplicate ids.
        collection: tuple[Record, ...] = ()
        for record in sorted(records, key=lambda item: item.ordering_key):
            collection = merge(collection, record)

        LOGGER.info("Loaded %s %s for %s", len(collection), scope.table, scope.channel_name)
        return collection
