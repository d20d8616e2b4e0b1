# src/opsdesk_api/application/use_cases/reconcile/list_outstanding_entities.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Use case: List entities with outstanding client balances.

Purpose:
    Serve the reconcile dashboard from precomputed summary rows only:

        1. Filter ``reconcile_stats_current`` to ``client_total_outstanding > 0``
           (optionally narrowed by charge-type family and an entity allowlist).
        2. Fetch the card aggregate over the unpaginated filter and one sorted
           page.
        3. Look up ``entity_task_stats`` for the page's entities (missing row
           → ``tasks: null``).
        4. Derive ``paid = total - outstanding - written_off`` per family.

Layer:
    application

Notes:
    - Read-only; charge and task tables are never touched.
    - An empty page skips the task-stats lookup and still returns cards.
    - A negative derived ``paid`` is clamped to zero and raises a consistency
      alarm (WARNING log + ``opsdesk_stats_consistency_alarms_total``).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from contextlib import suppress
from uuid import UUID

from opsdesk_api.application.schemas.dto.outstanding import (
    EntityMoneyDTO,
    EntityRefDTO,
    FamilyMoneyDTO,
    OutstandingCardsDTO,
    OutstandingEntitiesDTO,
    OutstandingEntityDTO,
    OutstandingListDTO,
    OutstandingQueryDTO,
    PaginationDTO,
    TaskCountersDTO,
)
from opsdesk_api.application.uow import UnitOfWork, resolve_repository
from opsdesk_api.domain.entities.reconcile_stats import (
    EntityReconcileStats,
    EntityTaskCounters,
    OutstandingFilter,
    OutstandingPageRequest,
    OutstandingTotals,
)
from opsdesk_api.domain.entities.stats_delta import TaskStatsDelta
from opsdesk_api.domain.enums.charges import ChargeType
from opsdesk_api.domain.enums.reconcile import StatsFamily
from opsdesk_api.domain.interfaces.repositories.entity_task_stats_repository import (
    EntityTaskStatsRepository,
)
from opsdesk_api.domain.interfaces.repositories.reconcile_stats_repository import (
    ReconcileStatsRepository,
)
from opsdesk_api.domain.services.reconcile_figures import FamilyFigures, derive_family_figures
from opsdesk_api.infrastructure.observability.metrics import get_stats_consistency_alarms_total

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


class ListOutstandingEntitiesUseCase:
    """Paginated, sorted, filtered listing of entities that owe money.

    Args:
        uow: Application UnitOfWork used to resolve the summary repositories.
        default_page_size: Page size used for missing or non-positive input.
        max_page_size: Upper bound on the page size.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._uow = uow
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    def _page_size(self, requested: int | None) -> int:
        if requested is None or requested <= 0:
            return self._default_page_size
        return min(requested, self._max_page_size)

    async def execute(self, query: OutstandingQueryDTO) -> OutstandingEntitiesDTO:
        """Run the listing.

        Args:
            query: Normalized query parameters.

        Returns:
            The ``{cards, list}`` response.
        """
        page = query.page
        page_size = self._page_size(query.page_size)
        flt = OutstandingFilter(charge_type=query.charge_type, entity_ids=tuple(query.entity_ids))
        request = OutstandingPageRequest(
            filter=flt,
            sort_field=query.sort_by,
            sort_order=query.sort_order,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

        logger.info(
            "reconcile.list_outstanding.start",
            extra={
                "extra": {
                    "page": page,
                    "page_size": page_size,
                    "charge_type": query.charge_type.value if query.charge_type else None,
                    "entity_ids": len(flt.entity_ids),
                    "sort_by": query.sort_by.value,
                    "sort_order": query.sort_order.value,
                },
            },
        )

        task_rows: Sequence[EntityTaskCounters] = []
        async with self._uow as tx:
            stats_repo: ReconcileStatsRepository = resolve_repository(
                tx, ReconcileStatsRepository, "reconcile_stats_repo"
            )
            totals = await stats_repo.sum_outstanding(flt)
            rows = await stats_repo.list_outstanding(request) if totals.entities_count else []

            if rows:
                task_repo: EntityTaskStatsRepository = resolve_repository(
                    tx, EntityTaskStatsRepository, "task_stats_repo"
                )
                task_rows = await task_repo.list_for_entities([r.entity_id for r in rows])

        counters_by_entity = {row.entity_id: row.counters for row in task_rows}
        data = [_row_to_dto(row, counters_by_entity.get(row.entity_id)) for row in rows]

        total_items = totals.entities_count
        return OutstandingEntitiesDTO(
            cards=_cards(totals),
            list=OutstandingListDTO(
                data=data,
                pagination=PaginationDTO(
                    page=page,
                    page_size=page_size,
                    total_items=total_items,
                    total_pages=math.ceil(total_items / page_size) if total_items else 0,
                    has_more=page * page_size < total_items,
                ),
            ),
        )


def _cards(totals: OutstandingTotals) -> OutstandingCardsDTO:
    return OutstandingCardsDTO(
        total_outstanding=totals.total_outstanding,
        service_fee_outstanding=totals.service_fee_outstanding,
        government_fee_outstanding=totals.government_fee_outstanding,
        external_charge_outstanding=totals.external_charge_outstanding,
        pending_charges_count=totals.pending_charges_count,
        entities_count=totals.entities_count,
    )


def _family_dto(row: EntityReconcileStats, charge_type: ChargeType) -> FamilyMoneyDTO:
    family = charge_type.family
    stats = row.stats
    figures = derive_family_figures(
        total=getattr(stats, f"{family}_total"),
        outstanding=getattr(stats, f"{family}_outstanding"),
        written_off=getattr(stats, f"{family}_written_off"),
    )
    if not figures.is_consistent:
        _raise_negative_paid_alarm(row.entity_id, family, figures)
    return FamilyMoneyDTO(
        total=figures.total,
        outstanding=figures.outstanding,
        written_off=figures.written_off,
        paid=figures.paid,
    )


def _raise_negative_paid_alarm(entity_id: UUID, family: str, figures: FamilyFigures) -> None:
    logger.warning(
        "reconcile.stats.negative_paid",
        extra={
            "extra": {
                "entity_id": str(entity_id),
                "charge_family": family,
                "total": str(figures.total),
                "outstanding": str(figures.outstanding),
                "written_off": str(figures.written_off),
                "shortfall": str(figures.paid_shortfall),
            },
        },
    )
    with suppress(Exception):
        get_stats_consistency_alarms_total().labels(
            family=StatsFamily.CHARGES.value,
            reason="negative_paid",
        ).inc()


def _row_to_dto(
    row: EntityReconcileStats,
    counters: TaskStatsDelta | None,
) -> OutstandingEntityDTO:
    entity = row.entity
    return OutstandingEntityDTO(
        entity_id=row.entity_id,
        entity=(
            EntityRefDTO(id=entity.id, name=entity.name, email=entity.email, status=entity.status)
            if entity is not None
            else None
        ),
        money=EntityMoneyDTO(
            service_fee=_family_dto(row, ChargeType.SERVICE_FEE),
            government_fee=_family_dto(row, ChargeType.GOVERNMENT_FEE),
            external_charge=_family_dto(row, ChargeType.EXTERNAL_CHARGE),
            client_total_outstanding=row.stats.client_total_outstanding,
            pending_charges_count=row.stats.pending_charges_count,
        ),
        tasks=TaskCountersDTO(**counters.as_dict()) if counters is not None else None,
    )


__all__ = ["ListOutstandingEntitiesUseCase", "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE"]
