# src/opsdesk_api/application/use_cases/reconcile/rebuild_entity_stats.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Use case: Correct an entity's summary rows from a full re-scan.

The correction is ``diff(stored, expected)`` applied through the regular
delta applier, so the summary tables keep a single write path. The scan and
the correction share one transaction; a consistent entity produces no write.
"""

from __future__ import annotations

import logging
from uuid import UUID

from opsdesk_api.application.schemas.dto.stats_report import EntityStatsReportDTO
from opsdesk_api.application.services.stats_applier import (
    apply_reconcile_delta,
    apply_task_stats_delta,
)
from opsdesk_api.application.uow import UnitOfWork, run_in_uow
from opsdesk_api.application.use_cases.reconcile.verify_entity_stats import (
    raise_drift_alarms,
    scan_entity_stats,
)
from opsdesk_api.domain.entities.stats_delta import diff
from opsdesk_api.domain.enums.reconcile import LifecycleOperation

logger = logging.getLogger(__name__)


class RebuildEntityStatsUseCase:
    """Re-scan one entity and apply correction deltas for any drift."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, entity_id: UUID) -> EntityStatsReportDTO:
        """Rebuild ``entity_id`` and return what was corrected."""

        async def _rebuild(tx: UnitOfWork) -> EntityStatsReportDTO:
            scan = await scan_entity_stats(tx, entity_id)
            charge_drift = scan.charge_drift
            task_drift = scan.task_drift

            if charge_drift or task_drift:
                raise_drift_alarms(scan)

            if charge_drift:
                await apply_reconcile_delta(
                    tx,
                    entity_id,
                    diff(scan.stored_charges, scan.expected_charges),
                    operation=LifecycleOperation.REBUILD,
                )
            if task_drift:
                await apply_task_stats_delta(
                    tx,
                    entity_id,
                    diff(scan.stored_tasks, scan.expected_tasks),
                    operation=LifecycleOperation.REBUILD,
                )

            return EntityStatsReportDTO.build(
                entity_id,
                charge_drift,
                task_drift,
                corrected=bool(charge_drift or task_drift),
            )

        report = await run_in_uow(self._uow, _rebuild)
        logger.info(
            "reconcile.stats.rebuilt",
            extra={
                "extra": {
                    "entity_id": str(entity_id),
                    "corrected": report.corrected,
                    "charge_fields": [d.field for d in report.charges],
                    "task_fields": [d.field for d in report.tasks],
                },
            },
        )
        return report


__all__ = ["RebuildEntityStatsUseCase"]
