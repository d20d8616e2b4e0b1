# tests/unit/application/test_list_outstanding_entities.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest

from opsdesk_api.application.schemas.dto.outstanding import OutstandingQueryDTO
from opsdesk_api.application.services.charge_stats_sync import apply_charge_create
from opsdesk_api.application.use_cases.reconcile.list_outstanding_entities import (
    ListOutstandingEntitiesUseCase,
)
from opsdesk_api.domain.entities.entity import EntityProfile
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, TaskStatsDelta
from opsdesk_api.domain.enums.charges import ChargeStatus, ChargeType
from opsdesk_api.domain.enums.reconcile import OutstandingSortField, SortOrder


async def _seed(uow: Any, charge_factory: Any, entity_id: UUID, *charges: Any) -> None:
    for charge in charges:
        await apply_charge_create(charge, uow, entity_id=entity_id)


@pytest.mark.asyncio
async def test_lists_only_entities_that_owe_money(uow: Any, charge_factory: Any) -> None:
    owes, settled = uuid4(), uuid4()
    await _seed(
        uow,
        charge_factory,
        owes,
        charge_factory("300"),
        charge_factory("200", status=ChargeStatus.PAID),
        charge_factory("50", status=ChargeStatus.WRITTEN_OFF),
    )
    await _seed(uow, charge_factory, settled, charge_factory("80", status=ChargeStatus.PAID))
    uow.reconcile_stats_repo.entities[owes] = EntityProfile(id=owes, name="Acme Sdn Bhd")
    uow.task_stats_repo.rows[owes] = TaskStatsDelta(pending=2, total_tasks=2)

    result = await ListOutstandingEntitiesUseCase(uow).execute(OutstandingQueryDTO())

    assert result.cards.entities_count == 1
    assert result.cards.total_outstanding == Decimal("300")
    assert result.cards.pending_charges_count == 1

    [row] = result.list_.data
    assert row.entity_id == owes
    assert row.entity is not None and row.entity.name == "Acme Sdn Bhd"
    assert row.money.service_fee.total == Decimal("550")
    assert row.money.service_fee.outstanding == Decimal("300")
    assert row.money.service_fee.written_off == Decimal("50")
    assert row.money.service_fee.paid == Decimal("200")
    assert row.money.government_fee.paid == Decimal("0")
    assert row.tasks is not None and row.tasks.pending == 2


@pytest.mark.asyncio
async def test_empty_result_skips_page_and_task_lookups(uow: Any) -> None:
    result = await ListOutstandingEntitiesUseCase(uow).execute(OutstandingQueryDTO(page=3))

    assert result.list_.data == []
    assert result.cards.total_outstanding == Decimal("0")
    assert result.list_.pagination.total_items == 0
    assert result.list_.pagination.total_pages == 0
    assert result.list_.pagination.has_more is False
    assert uow.reconcile_stats_repo.list_calls == []
    assert uow.task_stats_repo.lookups == []


@pytest.mark.asyncio
async def test_missing_task_stats_row_yields_null_tasks(uow: Any, charge_factory: Any) -> None:
    eid = uuid4()
    await _seed(uow, charge_factory, eid, charge_factory("10"))

    result = await ListOutstandingEntitiesUseCase(uow).execute(OutstandingQueryDTO())

    [row] = result.list_.data
    assert row.tasks is None
    assert row.entity is None
    assert uow.task_stats_repo.lookups == [[eid]]


@pytest.mark.asyncio
async def test_pagination_and_sorting(uow: Any, charge_factory: Any) -> None:
    ids = [uuid4() for _ in range(3)]
    for amount, eid in zip(("10", "30", "20"), ids, strict=True):
        await _seed(uow, charge_factory, eid, charge_factory(amount))

    use_case = ListOutstandingEntitiesUseCase(uow)
    first = await use_case.execute(OutstandingQueryDTO(page=1, page_size=2))
    second = await use_case.execute(OutstandingQueryDTO(page=2, page_size=2))

    assert [r.entity_id for r in first.list_.data] == [ids[1], ids[2]]
    assert [r.entity_id for r in second.list_.data] == [ids[0]]
    assert first.list_.pagination.total_pages == 2
    assert first.list_.pagination.has_more is True
    assert second.list_.pagination.has_more is False

    ascending = await use_case.execute(
        OutstandingQueryDTO(sort_by="pending_charges_count", sort_order="ASC"),
    )
    request = uow.reconcile_stats_repo.list_calls[-1]
    assert request.sort_field is OutstandingSortField.PENDING_CHARGES_COUNT
    assert request.sort_order is SortOrder.ASC
    assert len(ascending.list_.data) == 3


@pytest.mark.asyncio
async def test_page_size_is_clamped_and_defaulted(uow: Any, charge_factory: Any) -> None:
    await _seed(uow, charge_factory, uuid4(), charge_factory("1"))
    use_case = ListOutstandingEntitiesUseCase(uow, default_page_size=5, max_page_size=50)

    big = await use_case.execute(OutstandingQueryDTO(page_size=1000))
    none = await use_case.execute(OutstandingQueryDTO(page_size=0))

    assert big.list_.pagination.page_size == 50
    assert none.list_.pagination.page_size == 5
    assert uow.reconcile_stats_repo.list_calls[0].limit == 50


@pytest.mark.asyncio
async def test_charge_type_filter_uses_family_outstanding(uow: Any, charge_factory: Any) -> None:
    service, government = uuid4(), uuid4()
    await _seed(uow, charge_factory, service, charge_factory("10"))
    await _seed(
        uow,
        charge_factory,
        government,
        charge_factory("20", charge_type=ChargeType.GOVERNMENT_FEE),
    )

    result = await ListOutstandingEntitiesUseCase(uow).execute(
        OutstandingQueryDTO(charge_type="government_fee"),
    )

    assert [r.entity_id for r in result.list_.data] == [government]
    assert result.cards.government_fee_outstanding == Decimal("20")
    assert result.cards.service_fee_outstanding == Decimal("0")


@pytest.mark.asyncio
async def test_negative_paid_is_clamped_and_logged(
    uow: Any, caplog: pytest.LogCaptureFixture
) -> None:
    eid = uuid4()
    uow.reconcile_stats_repo.rows[eid] = ReconcileStatsDelta(
        service_fee_total=Decimal("100"),
        service_fee_outstanding=Decimal("120"),
        client_total_outstanding=Decimal("120"),
        pending_charges_count=1,
    )

    with caplog.at_level(logging.WARNING):
        result = await ListOutstandingEntitiesUseCase(uow).execute(OutstandingQueryDTO())

    assert result.list_.data[0].money.service_fee.paid == Decimal("0")
    assert any(r.getMessage() == "reconcile.stats.negative_paid" for r in caplog.records)


@pytest.mark.asyncio
async def test_response_serializes_list_key(uow: Any, charge_factory: Any) -> None:
    await _seed(uow, charge_factory, uuid4(), charge_factory("1"))
    result = await ListOutstandingEntitiesUseCase(uow).execute(OutstandingQueryDTO())

    payload = result.model_dump(by_alias=True)

    assert set(payload) == {"cards", "list"}
    assert set(payload["list"]) == {"data", "pagination"}
