"""Live, server-synchronized ordered collection bound to one scope.

Lifecycle for one scope:
1) mount: load the snapshot, then open the change channel
2) every insert notification is enriched and merged by id
3) unmount (or a scope change): close the channel unconditionally

The collection is only ever replaced by the snapshot loader or by merge();
nothing else writes to it. Failures become notices and never escape.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from clubhub.core.errors import LoadFailure, SubscriptionFailure
from clubhub.core.loader import SnapshotLoader
from clubhub.core.models import Notice, Record
from clubhub.core.ports import ChangeCallback, GatewayPort, NoticePort
from clubhub.core.reconcile import merge
from clubhub.core.scopes import ScopeKey
from clubhub.core.subscription import ChannelState, SubscriptionManager

LOGGER = logging.getLogger(__name__)

Listener = Callable[[tuple[Record, ...]], None]


class LiveCollection:
    """One OrderedCollection, exclusively owned by the component that mounts it."""

    def __init__(
        self,
        gateway: GatewayPort,
        notices: NoticePort,
        *,
        label: str,
        on_change: Optional[Listener] = None,
        on_other_change: Optional[ChangeCallback] = None,
    ) -> None:
        self._gateway = gateway
        self._notices = notices
        self._label = label
        self._loader = SnapshotLoader(gateway)
        self._on_change = on_change
        self._on_other_change = on_other_change
        self._scope: Optional[ScopeKey] = None
        self._items: tuple[Record, ...] = ()
        self._subscription: Optional[SubscriptionManager] = None
        self._generation = 0
        self._background: set[asyncio.Task] = set()
        self.error: Optional[str] = None
        self.loading = False

    @property
    def scope(self) -> Optional[ScopeKey]:
        return self._scope

    @property
    def items(self) -> tuple[Record, ...]:
        return self._items

    @property
    def channel_state(self) -> ChannelState:
        if self._subscription is None:
            return ChannelState.CLOSED
        return self._subscription.state

    async def mount(self, scope: Optional[ScopeKey]) -> None:
        """Bind the collection to ``scope``, replacing any previous scope."""

        if scope is not None and scope == self._scope and self._subscription is not None:
            return

        await self.unmount()
        self._generation += 1
        generation = self._generation
        self._scope = scope

        if scope is None or not scope.is_valid():
            LOGGER.debug("Mounted %s with empty scope", self._label)
            return

        await self._load(generation)
        if generation != self._generation:
            return

        subscription = SubscriptionManager(
            self._gateway,
            scope,
            self._apply,
            on_warning=self._warn,
            on_other_change=self._on_other_change,
        )
        self._subscription = subscription
        try:
            await subscription.open()
        except SubscriptionFailure as exc:
            LOGGER.warning("%s", exc)
            self._warn(exc)

    async def unmount(self) -> None:
        """Close the channel and discard the collection."""

        self._generation += 1
        subscription, self._subscription = self._subscription, None
        self._scope = None
        self._set_items(())
        self.error = None
        if subscription is not None:
            await subscription.close()

    async def reload(self) -> None:
        """Replace the collection with a fresh snapshot of the current scope."""

        if self._scope is None:
            return
        await self._load(self._generation)

    def schedule_reload(self) -> None:
        """Reload from a synchronous callback without blocking it."""

        task = asyncio.get_running_loop().create_task(self.reload())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for in-flight enrichment fetches and scheduled reloads."""

        while True:
            pending = list(self._background)
            if self._subscription is not None:
                await self._subscription.drain()
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _load(self, generation: int) -> None:
        scope = self._scope
        self.loading = True
        try:
            records = await self._loader.load(scope)
        except LoadFailure as exc:
            if generation != self._generation:
                return
            LOGGER.warning("%s", exc)
            self.error = f"Could not load {self._label}"
            self._set_items(())
            await self._notices.notify(
                Notice(
                    level="error",
                    title=f"Error loading {self._label}",
                    description=f"Could not load {self._label}. Please try again.",
                )
            )
            return
        finally:
            if generation == self._generation:
                self.loading = False

        # A newer mount() replaced the scope while the snapshot was loading.
        if generation != self._generation:
            LOGGER.debug("Discarding stale snapshot for %s", scope)
            return
        self.error = None
        self._set_items(records)

    def _apply(self, record: Record) -> None:
        self._set_items(merge(self._items, record))

    def _set_items(self, items: tuple[Record, ...]) -> None:
        if items is self._items:
            return
        self._items = items
        if self._on_change is not None:
            self._on_change(items)

    def _warn(self, failure: SubscriptionFailure) -> None:
        task = asyncio.get_running_loop().create_task(
            self._notices.notify(
                Notice(
                    level="warning",
                    title="Connection Error",
                    description=(
                        f"Unable to connect to real-time updates. "
                        f"New {self._label} may not appear immediately."
                    ),
                )
            )
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
