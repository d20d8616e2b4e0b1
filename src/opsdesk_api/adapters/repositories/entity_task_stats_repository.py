# src/opsdesk_api/adapters/repositories/entity_task_stats_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Entity task stats repository (SQLAlchemy, PostgreSQL)."""

from __future__ import annotations

import time
from collections.abc import Sequence
from contextlib import suppress
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import Insert
from sqlalchemy.dialects.postgresql import insert as pg_insert

from opsdesk_api.adapters.repositories.base_repository import BaseRepository
from opsdesk_api.domain.entities.reconcile_stats import EntityTaskCounters
from opsdesk_api.domain.entities.stats_delta import TaskStatsDelta
from opsdesk_api.domain.enums.reconcile import StatsFamily
from opsdesk_api.infrastructure.database.models.ops import EntityTaskStats
from opsdesk_api.infrastructure.observability.metrics import get_stats_delta_apply_seconds


def build_task_increment_upsert(entity_id: UUID, delta: TaskStatsDelta) -> Insert:
    """Return the upsert-with-increment statement for one task-counter row."""
    table = EntityTaskStats.__table__
    stmt = pg_insert(EntityTaskStats).values(entity_id=entity_id, **delta.as_dict())
    set_: dict[str, Any] = {
        name: table.c[name] + stmt.excluded[name] for name in TaskStatsDelta.field_names()
    }
    set_["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=[EntityTaskStats.entity_id], set_=set_)


def _row_to_delta(row: EntityTaskStats) -> TaskStatsDelta:
    return TaskStatsDelta(**{name: getattr(row, name) for name in TaskStatsDelta.field_names()})


class SqlAlchemyEntityTaskStatsRepository(BaseRepository[EntityTaskStats]):
    """SQLAlchemy-backed ``entity_task_stats`` repository."""

    _MODEL_NAME = "entity_task_stats"

    async def apply_delta(self, entity_id: UUID, delta: TaskStatsDelta) -> None:
        """Create or atomically increment the counter row for ``entity_id``."""
        start = time.perf_counter()
        async with self._instrumented("apply_delta"):
            await self._session.execute(build_task_increment_upsert(entity_id, delta))
        with suppress(Exception):
            get_stats_delta_apply_seconds().labels(family=StatsFamily.TASKS.value).observe(
                time.perf_counter() - start,
            )

    async def get(self, entity_id: UUID) -> TaskStatsDelta | None:
        """Return the stored counters for ``entity_id``."""
        async with self._instrumented("get"):
            row = await self.fetch_optional(
                select(EntityTaskStats).where(EntityTaskStats.entity_id == entity_id),
            )
        return _row_to_delta(row) if row is not None else None

    async def list_for_entities(
        self,
        entity_ids: Sequence[UUID],
    ) -> Sequence[EntityTaskCounters]:
        """Return existing counter rows for ``entity_ids``."""
        if not entity_ids:
            return []

        async with self._instrumented("list_for_entities"):
            rows = await self.fetch_all(
                select(EntityTaskStats).where(EntityTaskStats.entity_id.in_(list(entity_ids))),
            )

        return [
            EntityTaskCounters(entity_id=row.entity_id, counters=_row_to_delta(row))
            for row in rows
        ]


__all__ = ["SqlAlchemyEntityTaskStatsRepository", "build_task_increment_upsert"]
