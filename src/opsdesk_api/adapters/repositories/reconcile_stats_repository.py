# src/opsdesk_api/adapters/repositories/reconcile_stats_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Reconcile stats repository (SQLAlchemy, PostgreSQL).

Purpose:
    Persist ``reconcile_stats_current`` summary rows through a single
    upsert-with-increment statement and serve the outstanding-entities
    listing (one sorted page plus an unpaginated SUM aggregate).

Layer:
    adapters/repositories

Notes:
    - ``apply_delta`` issues exactly one statement:
        INSERT ... ON CONFLICT (entity_id) DO UPDATE SET col = col + excluded.col
      so concurrent increments serialize on the row lock and never lose
      updates.
    - Repositories never commit; the Unit of Work owns the transaction.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from contextlib import suppress
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Select, func, nulls_last, select
from sqlalchemy.dialects.postgresql import Insert
from sqlalchemy.dialects.postgresql import insert as pg_insert

from opsdesk_api.adapters.repositories.base_repository import BaseRepository
from opsdesk_api.domain.entities.entity import EntityProfile
from opsdesk_api.domain.entities.reconcile_stats import (
    EntityReconcileStats,
    OutstandingFilter,
    OutstandingPageRequest,
    OutstandingTotals,
)
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta
from opsdesk_api.domain.enums.reconcile import OutstandingSortField, SortOrder, StatsFamily
from opsdesk_api.infrastructure.database.models.ops import Entity, ReconcileStatsCurrent
from opsdesk_api.infrastructure.observability.metrics import get_stats_delta_apply_seconds

_ZERO = Decimal("0")


def build_increment_upsert(entity_id: UUID, delta: ReconcileStatsDelta) -> Insert:
    """Return the upsert-with-increment statement for one summary row."""
    table = ReconcileStatsCurrent.__table__
    stmt = pg_insert(ReconcileStatsCurrent).values(entity_id=entity_id, **delta.as_dict())
    set_: dict[str, Any] = {
        name: table.c[name] + stmt.excluded[name] for name in ReconcileStatsDelta.field_names()
    }
    set_["updated_at"] = func.now()
    return stmt.on_conflict_do_update(
        index_elements=[ReconcileStatsCurrent.entity_id],
        set_=set_,
    )


def outstanding_conditions(flt: OutstandingFilter) -> list[ColumnElement[bool]]:
    """Return the WHERE clauses shared by the page query and the card aggregate."""
    conditions: list[ColumnElement[bool]] = [ReconcileStatsCurrent.client_total_outstanding > 0]
    if flt.charge_type is not None:
        family_col = getattr(ReconcileStatsCurrent, f"{flt.charge_type.family}_outstanding")
        conditions.append(family_col > 0)
    if flt.entity_ids:
        conditions.append(ReconcileStatsCurrent.entity_id.in_(flt.entity_ids))
    return conditions


def build_outstanding_page_query(request: OutstandingPageRequest) -> Select[Any]:
    """Return the page query: summary rows left-joined with entity metadata."""
    if request.sort_field is OutstandingSortField.ENTITY_NAME:
        sort_col: Any = Entity.name
    else:
        sort_col = getattr(ReconcileStatsCurrent, request.sort_field.value)

    primary = sort_col.asc() if request.sort_order is SortOrder.ASC else sort_col.desc()

    return (
        select(ReconcileStatsCurrent, Entity)
        .outerjoin(Entity, Entity.id == ReconcileStatsCurrent.entity_id)
        .where(*outstanding_conditions(request.filter))
        .order_by(nulls_last(primary), ReconcileStatsCurrent.entity_id.asc())
        .limit(request.limit)
        .offset(request.offset)
    )


def build_outstanding_totals_query(flt: OutstandingFilter) -> Select[Any]:
    """Return the unpaginated SUM/COUNT aggregate over the listing predicate."""
    r = ReconcileStatsCurrent
    return select(
        func.coalesce(func.sum(r.service_fee_outstanding), 0),
        func.coalesce(func.sum(r.government_fee_outstanding), 0),
        func.coalesce(func.sum(r.external_charge_outstanding), 0),
        func.coalesce(func.sum(r.client_total_outstanding), 0),
        func.coalesce(func.sum(r.pending_charges_count), 0),
        func.count(r.entity_id),
    ).where(*outstanding_conditions(flt))


def _row_to_delta(row: ReconcileStatsCurrent) -> ReconcileStatsDelta:
    return ReconcileStatsDelta(
        **{name: getattr(row, name) for name in ReconcileStatsDelta.field_names()},
    )


def _entity_to_profile(row: Entity | None) -> EntityProfile | None:
    if row is None:
        return None
    return EntityProfile(id=row.id, name=row.name, email=row.email, status=row.status)


class SqlAlchemyReconcileStatsRepository(BaseRepository[ReconcileStatsCurrent]):
    """SQLAlchemy-backed ``reconcile_stats_current`` repository."""

    _MODEL_NAME = "reconcile_stats_current"

    async def apply_delta(self, entity_id: UUID, delta: ReconcileStatsDelta) -> None:
        """Create or atomically increment the summary row for ``entity_id``."""
        start = time.perf_counter()
        async with self._instrumented("apply_delta"):
            await self._session.execute(build_increment_upsert(entity_id, delta))
        with suppress(Exception):
            get_stats_delta_apply_seconds().labels(family=StatsFamily.CHARGES.value).observe(
                time.perf_counter() - start,
            )

    async def get(self, entity_id: UUID) -> ReconcileStatsDelta | None:
        """Return the stored counters for ``entity_id``."""
        async with self._instrumented("get"):
            row = await self.fetch_optional(
                select(ReconcileStatsCurrent).where(ReconcileStatsCurrent.entity_id == entity_id),
            )
        return _row_to_delta(row) if row is not None else None

    async def list_outstanding(
        self,
        request: OutstandingPageRequest,
    ) -> Sequence[EntityReconcileStats]:
        """Return one sorted page of entities with positive client outstanding."""
        async with self._instrumented("list_outstanding"):
            result = await self._session.execute(build_outstanding_page_query(request))
            rows = result.all()

        return [
            EntityReconcileStats(
                entity_id=stats.entity_id,
                stats=_row_to_delta(stats),
                entity=_entity_to_profile(entity),
            )
            for stats, entity in rows
        ]

    async def sum_outstanding(self, flt: OutstandingFilter) -> OutstandingTotals:
        """Return card totals over the unpaginated listing predicate."""
        async with self._instrumented("sum_outstanding"):
            result = await self._session.execute(build_outstanding_totals_query(flt))
            service, government, external, total, pending, count = result.one()

        return OutstandingTotals(
            service_fee_outstanding=Decimal(service or _ZERO),
            government_fee_outstanding=Decimal(government or _ZERO),
            external_charge_outstanding=Decimal(external or _ZERO),
            total_outstanding=Decimal(total or _ZERO),
            pending_charges_count=int(pending or 0),
            entities_count=int(count or 0),
        )


__all__ = [
    "SqlAlchemyReconcileStatsRepository",
    "build_increment_upsert",
    "build_outstanding_page_query",
    "build_outstanding_totals_query",
    "outstanding_conditions",
]
