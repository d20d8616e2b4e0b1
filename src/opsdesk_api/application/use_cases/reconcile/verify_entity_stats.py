# src/opsdesk_api/application/use_cases/reconcile/verify_entity_stats.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Use case: Verify an entity's summary rows against a full re-scan.

Purpose:
    Recompute ``reconcile_stats_current`` and ``entity_task_stats`` for one
    entity by summing the contributions of its active charges and tasks, and
    report every counter whose stored value differs.

Layer:
    application

Notes:
    - Read-only. Drift raises a consistency alarm (WARNING log + metric).
    - ``strict=True`` turns drift into :class:`StatsConsistencyError`.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from opsdesk_api.application.schemas.dto.stats_report import EntityStatsReportDTO
from opsdesk_api.application.services.stats_applier import reconcile_stats_repo, task_stats_repo
from opsdesk_api.application.uow import UnitOfWork, resolve_repository
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, TaskStatsDelta
from opsdesk_api.domain.enums.reconcile import StatsFamily
from opsdesk_api.domain.exceptions.aggregation import StatsConsistencyError
from opsdesk_api.domain.interfaces.repositories.aggregation_source_repository import (
    AggregationSourceRepository,
)
from opsdesk_api.domain.services.charge_contribution import sum_charge_contributions
from opsdesk_api.domain.services.reconcile_figures import CounterDrift, find_drift
from opsdesk_api.domain.services.task_contribution import sum_task_contributions
from opsdesk_api.infrastructure.observability.metrics import get_stats_consistency_alarms_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityStatsScan:
    """Stored and re-scanned summary vectors of one entity."""

    entity_id: UUID
    stored_charges: ReconcileStatsDelta
    expected_charges: ReconcileStatsDelta
    stored_tasks: TaskStatsDelta
    expected_tasks: TaskStatsDelta

    @property
    def charge_drift(self) -> tuple[CounterDrift, ...]:
        return find_drift(self.stored_charges, self.expected_charges)

    @property
    def task_drift(self) -> tuple[CounterDrift, ...]:
        return find_drift(self.stored_tasks, self.expected_tasks)


async def scan_entity_stats(tx: Any, entity_id: UUID) -> EntityStatsScan:
    """Load source rows and stored summaries of ``entity_id`` on ``tx``.

    A missing summary row is treated as all zeros.
    """
    source: AggregationSourceRepository = resolve_repository(
        tx, AggregationSourceRepository, "source_repo"
    )
    charges = await source.list_active_charges(entity_id)
    tasks = await source.list_active_tasks(entity_id)
    stored_charges = await reconcile_stats_repo(tx).get(entity_id)
    stored_tasks = await task_stats_repo(tx).get(entity_id)

    return EntityStatsScan(
        entity_id=entity_id,
        stored_charges=stored_charges or ReconcileStatsDelta.zero(),
        expected_charges=sum_charge_contributions(charges),
        stored_tasks=stored_tasks or TaskStatsDelta.zero(),
        expected_tasks=sum_task_contributions(tasks),
    )


def raise_drift_alarms(scan: EntityStatsScan) -> None:
    """Log and count drift for each family of ``scan``."""
    for family, drift in (
        (StatsFamily.CHARGES, scan.charge_drift),
        (StatsFamily.TASKS, scan.task_drift),
    ):
        if not drift:
            continue
        logger.warning(
            "reconcile.stats.drift",
            extra={
                "extra": {
                    "entity_id": str(scan.entity_id),
                    "family": family.value,
                    "fields": [d.field for d in drift],
                },
            },
        )
        with suppress(Exception):
            get_stats_consistency_alarms_total().labels(family=family.value, reason="drift").inc()


class VerifyEntityStatsUseCase:
    """Compare stored summary rows with a full re-scan of source rows."""

    def __init__(self, uow: UnitOfWork) -> None:
        """Initialize the use case.

        Args:
            uow: Application UnitOfWork used to resolve repositories.
        """
        self._uow = uow

    async def execute(self, entity_id: UUID, *, strict: bool = False) -> EntityStatsReportDTO:
        """Return the drift report for ``entity_id``.

        Raises:
            StatsConsistencyError: If ``strict`` and any counter drifted.
        """
        async with self._uow as tx:
            scan = await scan_entity_stats(tx, entity_id)

        report = EntityStatsReportDTO.build(entity_id, scan.charge_drift, scan.task_drift)
        if report.consistent:
            logger.info(
                "reconcile.stats.verified",
                extra={"extra": {"entity_id": str(entity_id)}},
            )
            return report

        raise_drift_alarms(scan)
        if strict:
            raise StatsConsistencyError(
                "Summary rows differ from source rows.",
                details=report.model_dump(mode="json"),
            )
        return report


__all__ = [
    "EntityStatsScan",
    "scan_entity_stats",
    "raise_drift_alarms",
    "VerifyEntityStatsUseCase",
]
