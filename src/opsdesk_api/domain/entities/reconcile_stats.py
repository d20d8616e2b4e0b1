# src/opsdesk_api/domain/entities/reconcile_stats.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Read-side entities for the outstanding-entities listing.

Purpose:
    Describe the filter/sort/page request understood by the summary
    repositories and the rows/aggregates they return.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from opsdesk_api.domain.entities.entity import EntityProfile
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, TaskStatsDelta
from opsdesk_api.domain.enums.charges import ChargeType
from opsdesk_api.domain.enums.reconcile import OutstandingSortField, SortOrder

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class OutstandingFilter:
    """Predicate over summary rows (``client_total_outstanding > 0`` is implied).

    Attributes:
        charge_type: Restrict to entities with positive outstanding in this
            family.
        entity_ids: Optional allowlist of entity ids.
    """

    charge_type: ChargeType | None = None
    entity_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class OutstandingPageRequest:
    """One page of the outstanding listing."""

    filter: OutstandingFilter = field(default_factory=OutstandingFilter)
    sort_field: OutstandingSortField = OutstandingSortField.CLIENT_TOTAL_OUTSTANDING
    sort_order: SortOrder = SortOrder.DESC
    limit: int = 20
    offset: int = 0


@dataclass(frozen=True, slots=True)
class EntityReconcileStats:
    """A stored ``reconcile_stats_current`` row joined with entity metadata."""

    entity_id: UUID
    stats: ReconcileStatsDelta
    entity: EntityProfile | None = None


@dataclass(frozen=True, slots=True)
class EntityTaskCounters:
    """A stored ``entity_task_stats`` row."""

    entity_id: UUID
    counters: TaskStatsDelta


@dataclass(frozen=True, slots=True)
class OutstandingTotals:
    """Unpaginated SUM aggregate over a filter, used for dashboard cards."""

    service_fee_outstanding: Decimal = _ZERO
    government_fee_outstanding: Decimal = _ZERO
    external_charge_outstanding: Decimal = _ZERO
    total_outstanding: Decimal = _ZERO
    pending_charges_count: int = 0
    entities_count: int = 0


__all__ = [
    "OutstandingFilter",
    "OutstandingPageRequest",
    "EntityReconcileStats",
    "EntityTaskCounters",
    "OutstandingTotals",
]
