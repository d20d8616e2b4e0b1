# src/opsdesk_api/application/services/charge_stats_sync.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Charge lifecycle adapters for ``reconcile_stats_current``.

Purpose:
    Translate each charge mutation into the delta that keeps its entity's
    billing summary equal to a full re-scan of the entity's active charges.

    =============  =====================================================
    create         + contribution(new)
    update         diff(before, after) on one entity, or
                   - before on the old entity and + after on the new one
    delete         - contribution(record before delete)
    restore        + contribution(restored record)
    hard_delete    - contribution(record before removal)
    reassign       move the charges' summed contribution between entities
    bulk_update    per-entity coalesced diffs, one write per entity
    =============  =====================================================

    A charge record carries only its ``task_id``; the owning entity is passed
    explicitly by the caller, who already holds the task.

Layer:
    application/services

Notes:
    Every function runs on the caller's transaction (``tx``) and never
    commits. Failures (unknown enum values, database errors) propagate.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, NamedTuple
from uuid import UUID

from opsdesk_api.application.services.stats_applier import (
    apply_reconcile_delta,
    coalesce_by_entity,
)
from opsdesk_api.application.uow import resolve_repository
from opsdesk_api.domain.entities.charge import ChargeRecord
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, diff, negate
from opsdesk_api.domain.enums.reconcile import LifecycleOperation
from opsdesk_api.domain.interfaces.repositories.aggregation_source_repository import (
    AggregationSourceRepository,
)
from opsdesk_api.domain.services.charge_contribution import (
    compute_charge_contribution,
    sum_charge_contributions,
)


class ChargeChange(NamedTuple):
    """One charge update inside a bulk operation."""

    entity_id: UUID | None
    before: ChargeRecord | None
    after: ChargeRecord | None


async def apply_charge_create(charge: ChargeRecord, tx: Any, *, entity_id: UUID | None) -> None:
    """Add the contribution of a newly created charge."""
    await apply_reconcile_delta(
        tx,
        entity_id,
        compute_charge_contribution(charge),
        operation=LifecycleOperation.CREATE,
    )


async def apply_charge_update(
    before: ChargeRecord | None,
    after: ChargeRecord | None,
    tx: Any,
    *,
    entity_id: UUID | None,
    after_entity_id: UUID | None = None,
) -> None:
    """Apply the net change between two versions of a charge.

    Args:
        before: Charge as it was before the update.
        after: Charge as it is after the update.
        tx: Active UnitOfWork.
        entity_id: Entity owning ``before``.
        after_entity_id: Entity owning ``after`` when it differs (the task
            moved); defaults to ``entity_id``.
    """
    target = entity_id if after_entity_id is None else after_entity_id
    old = compute_charge_contribution(before)
    new = compute_charge_contribution(after)

    if target == entity_id:
        await apply_reconcile_delta(
            tx, entity_id, diff(old, new), operation=LifecycleOperation.UPDATE
        )
        return

    await apply_reconcile_delta(tx, entity_id, negate(old), operation=LifecycleOperation.UPDATE)
    await apply_reconcile_delta(tx, target, new, operation=LifecycleOperation.UPDATE)


async def apply_charge_delete(charge: ChargeRecord, tx: Any, *, entity_id: UUID | None) -> None:
    """Remove the contribution of a charge being soft-deleted.

    ``charge`` must be the record as it was before deletion.
    """
    await apply_reconcile_delta(
        tx,
        entity_id,
        negate(compute_charge_contribution(charge)),
        operation=LifecycleOperation.DELETE,
    )


async def apply_charge_restore(charge: ChargeRecord, tx: Any, *, entity_id: UUID | None) -> None:
    """Add back the contribution of a restored charge.

    The record may still carry its old ``deleted_at``; it is treated as active.
    """
    await apply_reconcile_delta(
        tx,
        entity_id,
        compute_charge_contribution(charge, include_deleted=True),
        operation=LifecycleOperation.RESTORE,
    )


async def apply_charge_hard_delete(
    charge: ChargeRecord,
    tx: Any,
    *,
    entity_id: UUID | None,
) -> None:
    """Remove the contribution of a charge being permanently deleted.

    Call before the row is removed. A charge already soft-deleted contributes
    nothing, so nothing is written.
    """
    await apply_reconcile_delta(
        tx,
        entity_id,
        negate(compute_charge_contribution(charge)),
        operation=LifecycleOperation.HARD_DELETE,
    )


async def apply_charges_reassign(
    charges: Iterable[ChargeRecord],
    from_entity_id: UUID | None,
    to_entity_id: UUID | None,
    tx: Any,
) -> None:
    """Move the contributions of a task's charges to another entity.

    Used when a task is reassigned: the summed contribution of its active
    charges leaves ``from_entity_id`` and is added to ``to_entity_id``.
    """
    if from_entity_id == to_entity_id:
        return

    moved = sum_charge_contributions(charges)
    await apply_reconcile_delta(
        tx, from_entity_id, negate(moved), operation=LifecycleOperation.REASSIGN
    )
    await apply_reconcile_delta(tx, to_entity_id, moved, operation=LifecycleOperation.REASSIGN)


async def apply_task_charges_reassign(
    task_id: UUID,
    from_entity_id: UUID | None,
    to_entity_id: UUID | None,
    tx: Any,
) -> None:
    """Move the contributions of every active charge of ``task_id``.

    Loads the charges through the transaction's source repository. Call it
    next to the task update that changes the task's entity.
    """
    if from_entity_id == to_entity_id:
        return

    source: AggregationSourceRepository = resolve_repository(
        tx, AggregationSourceRepository, "source_repo"
    )
    charges = await source.list_active_charges_for_task(task_id)
    await apply_charges_reassign(charges, from_entity_id, to_entity_id, tx)


async def apply_charge_bulk_update(changes: Iterable[ChargeChange], tx: Any) -> None:
    """Apply many charge updates with one write per touched entity."""
    deltas: list[tuple[UUID | None, ReconcileStatsDelta]] = [
        (
            change.entity_id,
            diff(
                compute_charge_contribution(change.before),
                compute_charge_contribution(change.after),
            ),
        )
        for change in changes
    ]
    for entity_id, delta in coalesce_by_entity(deltas).items():
        await apply_reconcile_delta(tx, entity_id, delta, operation=LifecycleOperation.BULK_UPDATE)


__all__ = [
    "ChargeChange",
    "apply_charge_create",
    "apply_charge_update",
    "apply_charge_delete",
    "apply_charge_restore",
    "apply_charge_hard_delete",
    "apply_charges_reassign",
    "apply_task_charges_reassign",
    "apply_charge_bulk_update",
]
