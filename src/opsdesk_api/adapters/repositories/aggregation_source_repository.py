# src/opsdesk_api/adapters/repositories/aggregation_source_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Aggregation source repository (SQLAlchemy).

Purpose:
    Load the active charge and task rows an entity's summary rows are derived
    from, mapped to domain records, for full re-scans.

Layer:
    adapters/repositories

Notes:
    A charge belongs to the entity of its owning task. Only the charge's own
    ``deleted_at`` decides whether it is active; this mirrors the lifecycle
    adapters, which never touch charge contributions when a task is
    soft-deleted.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from opsdesk_api.adapters.repositories.base_repository import BaseRepository
from opsdesk_api.domain.entities.charge import TaskCharge
from opsdesk_api.domain.entities.task import Task
from opsdesk_api.domain.enums.charges import ChargeBearer
from opsdesk_api.domain.services.charge_contribution import (
    resolve_charge_status,
    resolve_charge_type,
)
from opsdesk_api.domain.services.task_contribution import resolve_task_status
from opsdesk_api.infrastructure.database.models.ops import Task as TaskModel
from opsdesk_api.infrastructure.database.models.ops import TaskCharge as TaskChargeModel


def _charge_to_domain(row: TaskChargeModel) -> TaskCharge:
    return TaskCharge(
        id=row.id,
        task_id=row.task_id,
        amount=row.amount,
        charge_type=resolve_charge_type(row.charge_type),
        status=resolve_charge_status(row.status),
        deleted_at=row.deleted_at,
        title=row.title,
        bearer=ChargeBearer(row.bearer),
        remark=row.remark,
    )


def _task_to_domain(row: TaskModel) -> Task:
    return Task(
        id=row.id,
        entity_id=row.entity_id,
        status=resolve_task_status(row.status),
        deleted_at=row.deleted_at,
    )


class SqlAlchemyAggregationSourceRepository(BaseRepository[TaskChargeModel]):
    """Read-only access to charge and task source rows."""

    _MODEL_NAME = "task_charges"

    async def list_active_charges(self, entity_id: UUID) -> Sequence[TaskCharge]:
        """Return active charges whose owning task belongs to ``entity_id``."""
        stmt = (
            select(TaskChargeModel)
            .join(TaskModel, TaskModel.id == TaskChargeModel.task_id)
            .where(
                TaskModel.entity_id == entity_id,
                TaskChargeModel.deleted_at.is_(None),
            )
            .order_by(TaskChargeModel.id.asc())
        )
        async with self._instrumented("list_active_charges"):
            rows = await self.fetch_all(stmt)
        return [_charge_to_domain(row) for row in rows]

    async def list_active_tasks(self, entity_id: UUID) -> Sequence[Task]:
        """Return active tasks assigned to ``entity_id``."""
        stmt = (
            select(TaskModel)
            .where(TaskModel.entity_id == entity_id, TaskModel.deleted_at.is_(None))
            .order_by(TaskModel.id.asc())
        )
        async with self._instrumented("list_active_tasks"):
            result = await self._session.execute(stmt)
            rows = list(result.scalars().all())
        return [_task_to_domain(row) for row in rows]

    async def list_active_charges_for_task(self, task_id: UUID) -> Sequence[TaskCharge]:
        """Return active charges of a single task."""
        stmt = (
            select(TaskChargeModel)
            .where(TaskChargeModel.task_id == task_id, TaskChargeModel.deleted_at.is_(None))
            .order_by(TaskChargeModel.id.asc())
        )
        async with self._instrumented("list_active_charges_for_task"):
            rows = await self.fetch_all(stmt)
        return [_charge_to_domain(row) for row in rows]


__all__ = ["SqlAlchemyAggregationSourceRepository"]
