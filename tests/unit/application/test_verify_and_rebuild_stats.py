# tests/unit/application/test_verify_and_rebuild_stats.py
from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from opsdesk_api.application.services.charge_stats_sync import apply_charge_create
from opsdesk_api.application.services.task_stats_sync import apply_task_create
from opsdesk_api.application.use_cases.reconcile.rebuild_entity_stats import (
    RebuildEntityStatsUseCase,
)
from opsdesk_api.application.use_cases.reconcile.verify_entity_stats import (
    VerifyEntityStatsUseCase,
)
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, TaskStatsDelta
from opsdesk_api.domain.enums.charges import ChargeStatus
from opsdesk_api.domain.enums.tasks import TaskStatus
from opsdesk_api.domain.exceptions.aggregation import StatsConsistencyError


async def _seed_consistent(uow: Any, charge_factory: Any, task_factory: Any) -> Any:
    eid = uuid4()
    task = task_factory(eid, TaskStatus.IN_PROGRESS)
    charges = [
        charge_factory("100", task_id=task.id),
        charge_factory("40", task_id=task.id, status=ChargeStatus.PAID),
    ]
    uow.source_repo.tasks.append(task)
    uow.source_repo.charges.extend(charges)

    await apply_task_create(task, uow)
    for charge in charges:
        await apply_charge_create(charge, uow, entity_id=eid)
    return eid


@pytest.mark.asyncio
async def test_incrementally_maintained_rows_match_rescan(
    uow: Any, charge_factory: Any, task_factory: Any
) -> None:
    eid = await _seed_consistent(uow, charge_factory, task_factory)

    report = await VerifyEntityStatsUseCase(uow).execute(eid, strict=True)

    assert report.consistent
    assert report.charges == [] and report.tasks == []


@pytest.mark.asyncio
async def test_entity_without_rows_is_consistent(uow: Any) -> None:
    report = await VerifyEntityStatsUseCase(uow).execute(uuid4())
    assert report.consistent


@pytest.mark.asyncio
async def test_drift_is_reported_and_strict_raises(
    uow: Any, charge_factory: Any, task_factory: Any
) -> None:
    eid = await _seed_consistent(uow, charge_factory, task_factory)
    uow.reconcile_stats_repo.rows[eid] += ReconcileStatsDelta(service_fee_total=Decimal("5"))

    report = await VerifyEntityStatsUseCase(uow).execute(eid)
    assert not report.consistent
    assert [d.field for d in report.charges] == ["service_fee_total"]
    assert report.charges[0].stored == "145"
    assert report.charges[0].expected == "140"

    with pytest.raises(StatsConsistencyError):
        await VerifyEntityStatsUseCase(uow).execute(eid, strict=True)


@pytest.mark.asyncio
async def test_rebuild_applies_correction_and_commits(
    uow: Any, charge_factory: Any, task_factory: Any
) -> None:
    eid = await _seed_consistent(uow, charge_factory, task_factory)
    uow.reconcile_stats_repo.rows[eid] = ReconcileStatsDelta.zero()
    uow.task_stats_repo.rows[eid] = TaskStatsDelta(pending=3, total_tasks=3)

    report = await RebuildEntityStatsUseCase(uow).execute(eid)

    assert report.corrected
    assert uow.committed
    assert uow.reconcile_stats_repo.rows[eid].service_fee_total == Decimal("140")
    assert uow.reconcile_stats_repo.rows[eid].client_total_outstanding == Decimal("100")
    assert uow.task_stats_repo.rows[eid] == TaskStatsDelta(in_progress=1, total_tasks=1)

    again = await VerifyEntityStatsUseCase(uow).execute(eid)
    assert again.consistent


@pytest.mark.asyncio
async def test_rebuild_of_consistent_entity_writes_nothing(
    uow: Any, charge_factory: Any, task_factory: Any
) -> None:
    eid = await _seed_consistent(uow, charge_factory, task_factory)
    writes = len(uow.reconcile_stats_repo.calls)

    report = await RebuildEntityStatsUseCase(uow).execute(eid)

    assert not report.corrected
    assert len(uow.reconcile_stats_repo.calls) == writes
