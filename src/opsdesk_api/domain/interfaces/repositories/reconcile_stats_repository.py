# src/opsdesk_api/domain/interfaces/repositories/reconcile_stats_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Reconcile stats repository interface.

Purpose:
    Define the single write path (upsert-with-increment) and the read-side
    queries for ``reconcile_stats_current`` summary rows.

Layer:
    domain/interfaces/repositories

Notes:
    Implementations must apply deltas as one atomic database statement on the
    caller's transaction. They never commit.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from opsdesk_api.domain.entities.reconcile_stats import (
    EntityReconcileStats,
    OutstandingFilter,
    OutstandingPageRequest,
    OutstandingTotals,
)
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta


class ReconcileStatsRepository(Protocol):
    """Protocol for the per-entity billing summary store."""

    async def apply_delta(self, entity_id: UUID, delta: ReconcileStatsDelta) -> None:
        """Create the row with ``delta`` as its state, or increment every field.

        Args:
            entity_id: Summary row key.
            delta: Signed change to apply.
        """

    async def get(self, entity_id: UUID) -> ReconcileStatsDelta | None:
        """Return the stored counters for ``entity_id`` or None if no row exists."""

    async def list_outstanding(
        self,
        request: OutstandingPageRequest,
    ) -> Sequence[EntityReconcileStats]:
        """Return one sorted page of rows with ``client_total_outstanding > 0``.

        Rows are joined with entity metadata; a missing entity yields
        ``entity=None``. Ordering must be deterministic (ties by entity id).
        """

    async def sum_outstanding(self, flt: OutstandingFilter) -> OutstandingTotals:
        """Return the unpaginated SUM/COUNT aggregate over the same predicate."""
