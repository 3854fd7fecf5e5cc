"""Error taxonomy for clubhub.

Gateway-boundary errors are raised by adapters. The live-collection errors
(load, subscription, enrichment, mutation) are raised by the core and are
always scoped to one collection or action; none of them is fatal.
"""

from __future__ import annotations

from typing import Optional


class ClubHubError(Exception):
    """Base class for every error raised by clubhub."""


class GatewayError(ClubHubError):
    """A query, mutation or transport call to the backend failed."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"code={self.code}")
        if self.status is not None:
            parts.append(f"status={self.status}")
        return " ".join(parts)


class RecordNotFound(GatewayError):
    """A single-row read returned no rows."""


class RecordValidationError(ClubHubError):
    """A row returned by the backend does not match its record type."""

    def __init__(self, table: str, field: str, reason: str) -> None:
        super().__init__(f"{table}.{field}: {reason}")
        self.table = table
        self.field = field
        self.reason = reason


class LoadFailure(ClubHubError):
    """The snapshot for a scope could not be loaded."""


class SubscriptionFailure(ClubHubError):
    """A change channel could not be opened or reported an error."""


class EnrichmentFailure(ClubHubError):
    """The full record for an insert notification could not be fetched."""

    def __init__(self, table: str, record_id: str, cause: Exception) -> None:
        super().__init__(f"Could not fetch {table} record {record_id}: {cause}")
        self.table = table
        self.record_id = record_id


class MutationFailure(ClubHubError):
    """A user action (send, register, cancel) could not be completed."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action
