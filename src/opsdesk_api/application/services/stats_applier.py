# src/opsdesk_api/application/services/stats_applier.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Delta applier: the single write path into the summary tables.

Purpose:
    Route a delta vector to the repository of its family on the caller's
    transaction, with the bookkeeping every write shares:

        * ``entity_id is None`` → no-op (tasks without an entity never
          aggregate).
        * all-zero delta → no-op (nothing to increment).
        * otherwise one upsert-with-increment statement, a DEBUG log line
          and the ``opsdesk_stats_deltas_applied_total`` counter.

    Also provides per-entity coalescing for bulk operations.

Layer:
    application/services

Notes:
    Database errors are logged by the repository and propagate unchanged to
    the caller's transaction. Nothing here retries or compensates.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import suppress
from typing import Any, TypeVar
from uuid import UUID

from opsdesk_api.application.uow import resolve_repository
from opsdesk_api.domain.entities.stats_delta import (
    ReconcileStatsDelta,
    StatsDelta,
    TaskStatsDelta,
)
from opsdesk_api.domain.enums.reconcile import LifecycleOperation, StatsFamily
from opsdesk_api.domain.interfaces.repositories.entity_task_stats_repository import (
    EntityTaskStatsRepository,
)
from opsdesk_api.domain.interfaces.repositories.reconcile_stats_repository import (
    ReconcileStatsRepository,
)
from opsdesk_api.infrastructure.logging.logger import get_json_logger
from opsdesk_api.infrastructure.observability.metrics import get_stats_deltas_applied_total

logger = get_json_logger(__name__)

TDelta = TypeVar("TDelta", bound=StatsDelta)


def reconcile_stats_repo(tx: Any) -> ReconcileStatsRepository:
    """Return the reconcile stats repository of ``tx``."""
    return resolve_repository(tx, ReconcileStatsRepository, "reconcile_stats_repo")


def task_stats_repo(tx: Any) -> EntityTaskStatsRepository:
    """Return the entity task stats repository of ``tx``."""
    return resolve_repository(tx, EntityTaskStatsRepository, "task_stats_repo")


def _record_applied(
    family: StatsFamily,
    operation: LifecycleOperation,
    entity_id: UUID,
    delta: StatsDelta,
) -> None:
    logger.debug(
        "stats.delta.applied",
        extra={
            "extra": {
                "family": family.value,
                "operation": operation.value,
                "entity_id": str(entity_id),
                "delta": {k: str(v) for k, v in delta.as_dict().items() if v != 0},
            },
        },
    )
    with suppress(Exception):
        get_stats_deltas_applied_total().labels(
            family=family.value,
            operation=operation.value,
        ).inc()


async def apply_reconcile_delta(
    tx: Any,
    entity_id: UUID | None,
    delta: ReconcileStatsDelta,
    *,
    operation: LifecycleOperation,
) -> None:
    """Increment ``reconcile_stats_current`` for ``entity_id`` by ``delta``.

    Args:
        tx: Active UnitOfWork of the caller.
        entity_id: Summary row key; ``None`` is a no-op.
        delta: Signed change.
        operation: Lifecycle operation, for logs and metrics.
    """
    if entity_id is None or delta.is_zero():
        return
    await reconcile_stats_repo(tx).apply_delta(entity_id, delta)
    _record_applied(StatsFamily.CHARGES, operation, entity_id, delta)


async def apply_task_stats_delta(
    tx: Any,
    entity_id: UUID | None,
    delta: TaskStatsDelta,
    *,
    operation: LifecycleOperation,
) -> None:
    """Increment ``entity_task_stats`` for ``entity_id`` by ``delta``."""
    if entity_id is None or delta.is_zero():
        return
    await task_stats_repo(tx).apply_delta(entity_id, delta)
    _record_applied(StatsFamily.TASKS, operation, entity_id, delta)


def coalesce_by_entity(
    items: Iterable[tuple[UUID | None, TDelta]],
) -> dict[UUID, TDelta]:
    """Sum deltas per entity, dropping ``None`` entities.

    The result is ordered by entity id so concurrent bulk transactions lock
    summary rows in the same order.
    """
    totals: dict[UUID, TDelta] = {}
    for entity_id, delta in items:
        if entity_id is None:
            continue
        current = totals.get(entity_id)
        totals[entity_id] = delta if current is None else current + delta
    return {eid: totals[eid] for eid in sorted(totals, key=str)}


__all__ = [
    "apply_reconcile_delta",
    "apply_task_stats_delta",
    "coalesce_by_entity",
    "reconcile_stats_repo",
    "task_stats_repo",
]
