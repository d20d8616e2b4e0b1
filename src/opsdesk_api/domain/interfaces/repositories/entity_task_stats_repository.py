# src/opsdesk_api/domain/interfaces/repositories/entity_task_stats_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Entity task stats repository interface."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from opsdesk_api.domain.entities.reconcile_stats import EntityTaskCounters
from opsdesk_api.domain.entities.stats_delta import TaskStatsDelta


class EntityTaskStatsRepository(Protocol):
    """Protocol for the per-entity task counter store."""

    async def apply_delta(self, entity_id: UUID, delta: TaskStatsDelta) -> None:
        """Create or atomically increment the row for ``entity_id``."""

    async def get(self, entity_id: UUID) -> TaskStatsDelta | None:
        """Return the stored counters for ``entity_id`` or None."""

    async def list_for_entities(
        self,
        entity_ids: Sequence[UUID],
    ) -> Sequence[EntityTaskCounters]:
        """Return the rows that exist for ``entity_ids`` (missing ids are skipped)."""
