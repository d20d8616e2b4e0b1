# src/opsdesk_api/application/services/task_stats_sync.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Task lifecycle adapters for ``entity_task_stats``.

Each entry point computes the task contribution(s) involved in a mutation
and applies the resulting delta on the caller's transaction. The owning
entity is read from the task record itself; a task without an entity is a
no-op.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from opsdesk_api.application.services.stats_applier import (
    apply_task_stats_delta,
    coalesce_by_entity,
)
from opsdesk_api.domain.entities.stats_delta import TaskStatsDelta, diff, negate
from opsdesk_api.domain.entities.task import TaskRecord
from opsdesk_api.domain.enums.reconcile import LifecycleOperation
from opsdesk_api.domain.services.task_contribution import compute_task_contribution


def _entity_of(task: TaskRecord | None) -> UUID | None:
    return task.entity_id if task is not None else None


def _update_deltas(
    before: TaskRecord | None,
    after: TaskRecord | None,
) -> list[tuple[UUID | None, TaskStatsDelta]]:
    """Return the (entity, delta) writes for one task update."""
    old = compute_task_contribution(before)
    new = compute_task_contribution(after)
    old_entity = _entity_of(before)
    new_entity = _entity_of(after)

    if old_entity == new_entity:
        return [(old_entity, diff(old, new))]
    return [(old_entity, negate(old)), (new_entity, new)]


async def apply_task_create(task: TaskRecord, tx: Any) -> None:
    """Add the contribution of a newly created task."""
    await apply_task_stats_delta(
        tx,
        task.entity_id,
        compute_task_contribution(task),
        operation=LifecycleOperation.CREATE,
    )


async def apply_task_update(before: TaskRecord | None, after: TaskRecord | None, tx: Any) -> None:
    """Apply a status change and/or entity reassignment.

    Same entity: one ``diff(before, after)`` write. Different entities: the
    old contribution is removed from the old entity and the new one added to
    the new entity (two writes).
    """
    for entity_id, delta in _update_deltas(before, after):
        await apply_task_stats_delta(tx, entity_id, delta, operation=LifecycleOperation.UPDATE)


async def apply_task_delete(task: TaskRecord, tx: Any) -> None:
    """Remove the contribution of a task being soft-deleted (pre-delete record)."""
    await apply_task_stats_delta(
        tx,
        task.entity_id,
        negate(compute_task_contribution(task)),
        operation=LifecycleOperation.DELETE,
    )


async def apply_task_restore(task: TaskRecord, tx: Any) -> None:
    """Add back the contribution of a restored task."""
    await apply_task_stats_delta(
        tx,
        task.entity_id,
        compute_task_contribution(task, include_deleted=True),
        operation=LifecycleOperation.RESTORE,
    )


async def apply_task_bulk_update(
    pairs: Iterable[tuple[TaskRecord | None, TaskRecord | None]],
    tx: Any,
) -> None:
    """Apply many task updates with one write per touched entity."""
    deltas: list[tuple[UUID | None, TaskStatsDelta]] = []
    for before, after in pairs:
        deltas.extend(_update_deltas(before, after))

    for entity_id, delta in coalesce_by_entity(deltas).items():
        await apply_task_stats_delta(tx, entity_id, delta, operation=LifecycleOperation.BULK_UPDATE)


__all__ = [
    "apply_task_create",
    "apply_task_update",
    "apply_task_delete",
    "apply_task_restore",
    "apply_task_bulk_update",
]
