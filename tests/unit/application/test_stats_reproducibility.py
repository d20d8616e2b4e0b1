# tests/unit/application/test_stats_reproducibility.py
"""Random lifecycle sequences must leave rows equal to a full re-scan."""

from __future__ import annotations

import random
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

import pytest

from opsdesk_api.application.services.charge_stats_sync import (
    apply_charge_create,
    apply_charge_delete,
    apply_charge_restore,
    apply_charge_update,
    apply_task_charges_reassign,
)
from opsdesk_api.application.services.task_stats_sync import (
    apply_task_create,
    apply_task_delete,
    apply_task_restore,
    apply_task_update,
)
from opsdesk_api.application.use_cases.reconcile.verify_entity_stats import (
    VerifyEntityStatsUseCase,
)
from opsdesk_api.domain.enums.charges import ChargeStatus, ChargeType
from opsdesk_api.domain.enums.tasks import TaskStatus

T = TypeVar("T")

ENTITIES: list[UUID | None] = [UUID(int=1), UUID(int=2), UUID(int=3), None]
DELETED_AT = datetime(2026, 1, 1, tzinfo=UTC)
OPERATIONS = (
    "task_create",
    "task_update",
    "task_reassign",
    "task_delete",
    "task_restore",
    "charge_create",
    "charge_update",
    "charge_delete",
    "charge_restore",
)


def _pick(rng: random.Random, items: list[T]) -> T | None:
    return rng.choice(items) if items else None


def _swap(items: list[T], old: T, new: T) -> None:
    items[items.index(old)] = new


async def _run_sequence(
    rng: random.Random,
    uow: Any,
    charge_factory: Any,
    task_factory: Any,
) -> None:
    src = uow.source_repo

    def entity_of(task_id: UUID) -> UUID | None:
        return next(t.entity_id for t in src.tasks if t.id == task_id)

    for _ in range(300):
        op = rng.choice(OPERATIONS) if src.tasks else "task_create"
        active_tasks = [t for t in src.tasks if t.deleted_at is None]
        active_charges = [c for c in src.charges if c.deleted_at is None]

        if op == "task_create":
            task = task_factory(rng.choice(ENTITIES), rng.choice(list(TaskStatus)))
            src.tasks.append(task)
            await apply_task_create(task, uow)

        elif op == "task_update":
            before = _pick(rng, active_tasks)
            if before is None:
                continue
            after = replace(before, status=rng.choice(list(TaskStatus)))
            _swap(src.tasks, before, after)
            await apply_task_update(before, after, uow)

        elif op == "task_reassign":
            before = rng.choice(src.tasks)
            after = replace(before, entity_id=rng.choice(ENTITIES))
            await apply_task_charges_reassign(before.id, before.entity_id, after.entity_id, uow)
            _swap(src.tasks, before, after)
            await apply_task_update(before, after, uow)

        elif op == "task_delete":
            before = _pick(rng, active_tasks)
            if before is None:
                continue
            _swap(src.tasks, before, replace(before, deleted_at=DELETED_AT))
            await apply_task_delete(before, uow)

        elif op == "task_restore":
            before = _pick(rng, [t for t in src.tasks if t.deleted_at is not None])
            if before is None:
                continue
            _swap(src.tasks, before, replace(before, deleted_at=None))
            await apply_task_restore(before, uow)

        elif op == "charge_create":
            task = rng.choice(src.tasks)
            charge = charge_factory(
                f"{rng.randint(1, 500)}.{rng.randint(0, 99):02d}",
                charge_type=rng.choice(list(ChargeType)),
                status=rng.choice(list(ChargeStatus)),
                task_id=task.id,
            )
            src.charges.append(charge)
            await apply_charge_create(charge, uow, entity_id=task.entity_id)

        elif op == "charge_update":
            before = _pick(rng, active_charges)
            if before is None:
                continue
            after = replace(
                before,
                status=rng.choice(list(ChargeStatus)),
                charge_type=rng.choice(list(ChargeType)),
                amount=max(Decimal("0"), before.amount + rng.randint(-5, 5)),
            )
            _swap(src.charges, before, after)
            await apply_charge_update(before, after, uow, entity_id=entity_of(before.task_id))

        elif op == "charge_delete":
            before = _pick(rng, active_charges)
            if before is None:
                continue
            _swap(src.charges, before, replace(before, deleted_at=DELETED_AT))
            await apply_charge_delete(before, uow, entity_id=entity_of(before.task_id))

        else:
            before = _pick(rng, [c for c in src.charges if c.deleted_at is not None])
            if before is None:
                continue
            _swap(src.charges, before, replace(before, deleted_at=None))
            await apply_charge_restore(before, uow, entity_id=entity_of(before.task_id))


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [7, 42, 2026])
async def test_random_lifecycle_sequence_matches_full_rescan(
    seed: int,
    uow: Any,
    charge_factory: Any,
    task_factory: Any,
) -> None:
    await _run_sequence(random.Random(seed), uow, charge_factory, task_factory)

    for eid in ENTITIES:
        if eid is None:
            continue
        report = await VerifyEntityStatsUseCase(uow).execute(eid, strict=True)
        assert report.consistent


@pytest.mark.asyncio
async def test_task_charges_reassign_loads_active_charges(
    uow: Any,
    charge_factory: Any,
    task_factory: Any,
) -> None:
    src_entity, dst_entity = UUID(int=10), UUID(int=11)
    task = task_factory(src_entity)
    live = charge_factory("120", task_id=task.id)
    gone = charge_factory("80", task_id=task.id, deleted=True)
    uow.source_repo.tasks.append(task)
    uow.source_repo.charges.extend([live, gone])
    await apply_charge_create(live, uow, entity_id=src_entity)

    await apply_task_charges_reassign(task.id, src_entity, dst_entity, uow)

    assert uow.reconcile_stats_repo.rows[src_entity].is_zero()
    moved = uow.reconcile_stats_repo.rows[dst_entity]
    assert moved.service_fee_total == live.amount
    assert moved.pending_charges_count == 1


@pytest.mark.asyncio
async def test_task_charges_reassign_same_entity_skips_lookup(uow: Any) -> None:
    eid = UUID(int=12)
    uow.source_repo = None  # any lookup would fail

    await apply_task_charges_reassign(UUID(int=99), eid, eid, uow)

    assert uow.reconcile_stats_repo.calls == []
