"""Reconciliation of incoming records into an ordered collection (core domain)."""

from __future__ import annotations

import logging
from typing import Sequence, Tuple, TypeVar

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")


def merge(collection: Sequence[R], record: R) -> Tuple[R, ...]:
    """Merge one record into ``collection`` without duplicating its id.

    - A record whose id is already present leaves the collection unchanged
      (the same object is returned), so replayed deliveries are no-ops.
    - Otherwise the record is appended at the end. Arrival order is kept even
      when it differs from creation order; records are never re-sorted here.
    - The input is never mutated.
    """

    record_id = record.id
    if any(item.id == record_id for item in collection):
        LOGGER.debug("Record %s already present, skipping duplicate", record_id)
        return collection if isinstance(collection, tuple) else tuple(collection)
    return (*collection, record)
