# tests/conftest.py
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest

from opsdesk_api.domain.entities.charge import TaskCharge
from opsdesk_api.domain.entities.entity import EntityProfile
from opsdesk_api.domain.entities.reconcile_stats import (
    EntityReconcileStats,
    EntityTaskCounters,
    OutstandingFilter,
    OutstandingPageRequest,
    OutstandingTotals,
)
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta, TaskStatsDelta
from opsdesk_api.domain.entities.task import Task
from opsdesk_api.domain.enums.charges import ChargeStatus, ChargeType
from opsdesk_api.domain.enums.reconcile import OutstandingSortField, SortOrder
from opsdesk_api.domain.enums.tasks import TaskStatus


class InMemoryReconcileStatsRepository:
    """Increment-semantics fake of the ``reconcile_stats_current`` repository."""

    def __init__(self) -> None:
        self.rows: dict[UUID, ReconcileStatsDelta] = {}
        self.entities: dict[UUID, EntityProfile] = {}
        self.calls: list[tuple[UUID, ReconcileStatsDelta]] = []
        self.list_calls: list[OutstandingPageRequest] = []
        self.sum_calls: list[OutstandingFilter] = []

    async def apply_delta(self, entity_id: UUID, delta: ReconcileStatsDelta) -> None:
        self.calls.append((entity_id, delta))
        current = self.rows.get(entity_id, ReconcileStatsDelta.zero())
        self.rows[entity_id] = current + delta

    async def get(self, entity_id: UUID) -> ReconcileStatsDelta | None:
        return self.rows.get(entity_id)

    def _matching(self, flt: OutstandingFilter) -> list[tuple[UUID, ReconcileStatsDelta]]:
        out: list[tuple[UUID, ReconcileStatsDelta]] = []
        for entity_id, stats in self.rows.items():
            if stats.client_total_outstanding <= 0:
                continue
            if flt.charge_type is not None and (
                getattr(stats, f"{flt.charge_type.family}_outstanding") <= 0
            ):
                continue
            if flt.entity_ids and entity_id not in flt.entity_ids:
                continue
            out.append((entity_id, stats))
        return out

    async def list_outstanding(
        self,
        request: OutstandingPageRequest,
    ) -> Sequence[EntityReconcileStats]:
        self.list_calls.append(request)
        matching = self._matching(request.filter)

        def _key(item: tuple[UUID, ReconcileStatsDelta]) -> Any:
            entity_id, stats = item
            if request.sort_field is OutstandingSortField.ENTITY_NAME:
                profile = self.entities.get(entity_id)
                return profile.name if profile else ""
            return getattr(stats, request.sort_field.value)

        matching.sort(key=lambda item: str(item[0]))
        matching.sort(key=_key, reverse=request.sort_order is SortOrder.DESC)
        page = matching[request.offset : request.offset + request.limit]
        return [
            EntityReconcileStats(entity_id=eid, stats=stats, entity=self.entities.get(eid))
            for eid, stats in page
        ]

    async def sum_outstanding(self, flt: OutstandingFilter) -> OutstandingTotals:
        self.sum_calls.append(flt)
        matching = [stats for _, stats in self._matching(flt)]
        return OutstandingTotals(
            service_fee_outstanding=sum(
                (s.service_fee_outstanding for s in matching), Decimal("0")
            ),
            government_fee_outstanding=sum(
                (s.government_fee_outstanding for s in matching), Decimal("0")
            ),
            external_charge_outstanding=sum(
                (s.external_charge_outstanding for s in matching), Decimal("0")
            ),
            total_outstanding=sum((s.client_total_outstanding for s in matching), Decimal("0")),
            pending_charges_count=sum(s.pending_charges_count for s in matching),
            entities_count=len(matching),
        )


class InMemoryTaskStatsRepository:
    """Increment-semantics fake of the ``entity_task_stats`` repository."""

    def __init__(self) -> None:
        self.rows: dict[UUID, TaskStatsDelta] = {}
        self.calls: list[tuple[UUID, TaskStatsDelta]] = []
        self.lookups: list[list[UUID]] = []

    async def apply_delta(self, entity_id: UUID, delta: TaskStatsDelta) -> None:
        self.calls.append((entity_id, delta))
        current = self.rows.get(entity_id, TaskStatsDelta.zero())
        self.rows[entity_id] = current + delta

    async def get(self, entity_id: UUID) -> TaskStatsDelta | None:
        return self.rows.get(entity_id)

    async def list_for_entities(self, entity_ids: Sequence[UUID]) -> Sequence[EntityTaskCounters]:
        self.lookups.append(list(entity_ids))
        return [
            EntityTaskCounters(entity_id=eid, counters=self.rows[eid])
            for eid in entity_ids
            if eid in self.rows
        ]


@dataclass
class InMemorySourceRepository:
    """Source rows for full re-scans; charges are keyed by their owning task."""

    tasks: list[Task] = field(default_factory=list)
    charges: list[TaskCharge] = field(default_factory=list)

    async def list_active_charges(self, entity_id: UUID) -> Sequence[TaskCharge]:
        task_ids = {t.id for t in self.tasks if t.entity_id == entity_id}
        return [c for c in self.charges if c.task_id in task_ids and c.deleted_at is None]

    async def list_active_tasks(self, entity_id: UUID) -> Sequence[Task]:
        return [t for t in self.tasks if t.entity_id == entity_id and t.deleted_at is None]

    async def list_active_charges_for_task(self, task_id: UUID) -> Sequence[TaskCharge]:
        return [c for c in self.charges if c.task_id == task_id and c.deleted_at is None]


class FakeUnitOfWork:
    """Minimal UnitOfWork exposing in-memory repositories as attributes."""

    def __init__(self) -> None:
        self.reconcile_stats_repo = InMemoryReconcileStatsRepository()
        self.task_stats_repo = InMemoryTaskStatsRepository()
        self.source_repo = InMemorySourceRepository()
        self.entered = 0
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> FakeUnitOfWork:
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        return None

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    def get_repository(self, repo_type: type[Any]) -> Any:
        raise AssertionError(f"unexpected repository lookup: {repo_type!r}")


def make_charge(
    amount: str | int = "100",
    *,
    charge_type: ChargeType = ChargeType.SERVICE_FEE,
    status: ChargeStatus = ChargeStatus.NOT_PAID,
    task_id: UUID | None = None,
    deleted: bool = False,
) -> TaskCharge:
    return TaskCharge(
        id=uuid4(),
        task_id=task_id or uuid4(),
        amount=Decimal(str(amount)),
        charge_type=charge_type,
        status=status,
        deleted_at=datetime(2026, 1, 1, tzinfo=UTC) if deleted else None,
    )


def make_task(
    entity_id: UUID | None,
    status: TaskStatus = TaskStatus.PENDING,
    *,
    deleted: bool = False,
) -> Task:
    return Task(
        id=uuid4(),
        entity_id=entity_id,
        status=status,
        deleted_at=datetime(2026, 1, 1, tzinfo=UTC) if deleted else None,
    )


@pytest.fixture
def uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest.fixture
def charge_factory() -> Any:
    return make_charge


@pytest.fixture
def task_factory() -> Any:
    return make_task
