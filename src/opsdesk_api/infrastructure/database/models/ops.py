# src/opsdesk_api/infrastructure/database/models/ops.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Operations models: entities, tasks, task charges and their summary rows.

Tables:
    entities                  Client entity metadata (read-only here).
    tasks                     Work items, optionally owned by an entity.
    task_charges              Billing charges attached to tasks.
    reconcile_stats_current   Per-entity billing summary (derived state).
    entity_task_stats         Per-entity task-status counters (derived state).

Notes:
    The two summary tables are keyed by ``entity_id`` and have no foreign key
    to ``entities``; the listing tolerates a summary row whose entity is gone.
    They are written only through the upsert-with-increment repositories.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from opsdesk_api.infrastructure.database.models.base import (
    DEFAULT_DB_SCHEMA,
    Base,
    IdentityMixin,
    SoftDeleteMixin,
    TimestampMixin,
    now_utc,
    qualified,
)

#: NUMERIC(14, 2) for all money columns.
Money = Numeric(14, 2)

_SCHEMA_ARGS = {"schema": DEFAULT_DB_SCHEMA} if DEFAULT_DB_SCHEMA else {}


def _money_column() -> Mapped[Decimal]:
    return mapped_column(Money, nullable=False, default=Decimal("0"), server_default="0")


def _count_column() -> Mapped[int]:
    return mapped_column(Integer, nullable=False, default=0, server_default="0")


class Entity(IdentityMixin, TimestampMixin, Base):
    """Client entity (business / customer)."""

    __tablename__ = "entities"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)


class Task(IdentityMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Task record. ``entity_id`` may be NULL (such tasks never aggregate)."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_entity_id_deleted_at", "entity_id", "deleted_at"),
        _SCHEMA_ARGS,
    )

    entity_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("entities.id"), ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PENDING")


class TaskCharge(IdentityMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Billing charge attached to a task."""

    __tablename__ = "task_charges"
    __table_args__ = (
        Index("ix_task_charges_task_id_deleted_at", "task_id", "deleted_at"),
        _SCHEMA_ARGS,
    )

    task_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("tasks.id"), ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    charge_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="NOT_PAID")
    bearer: Mapped[str] = mapped_column(String(16), nullable=False, default="CLIENT")
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)


class ReconcileStatsCurrent(Base):
    """Per-entity billing summary row."""

    __tablename__ = "reconcile_stats_current"

    entity_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)

    service_fee_total: Mapped[Decimal] = _money_column()
    service_fee_outstanding: Mapped[Decimal] = _money_column()
    service_fee_written_off: Mapped[Decimal] = _money_column()

    government_fee_total: Mapped[Decimal] = _money_column()
    government_fee_outstanding: Mapped[Decimal] = _money_column()
    government_fee_written_off: Mapped[Decimal] = _money_column()

    external_charge_total: Mapped[Decimal] = _money_column()
    external_charge_outstanding: Mapped[Decimal] = _money_column()
    external_charge_written_off: Mapped[Decimal] = _money_column()

    client_total_outstanding: Mapped[Decimal] = _money_column()
    pending_charges_count: Mapped[int] = _count_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )


class EntityTaskStats(Base):
    """Per-entity task-status counters."""

    __tablename__ = "entity_task_stats"

    entity_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)

    pending: Mapped[int] = _count_column()
    in_progress: Mapped[int] = _count_column()
    completed: Mapped[int] = _count_column()
    cancelled: Mapped[int] = _count_column()
    on_hold: Mapped[int] = _count_column()
    pending_client_input: Mapped[int] = _count_column()
    total_tasks: Mapped[int] = _count_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )


__all__ = [
    "Money",
    "Entity",
    "Task",
    "TaskCharge",
    "ReconcileStatsCurrent",
    "EntityTaskStats",
]
