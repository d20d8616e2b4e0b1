# tests/unit/adapters/test_sqlalchemy_uow.py
from __future__ import annotations

from typing import Any

import pytest

from opsdesk_api.adapters.repositories.reconcile_stats_repository import (
    SqlAlchemyReconcileStatsRepository,
)
from opsdesk_api.adapters.uow import SqlAlchemyUnitOfWork
from opsdesk_api.application.uow import run_in_uow
from opsdesk_api.domain.interfaces.repositories.aggregation_source_repository import (
    AggregationSourceRepository,
)
from opsdesk_api.domain.interfaces.repositories.reconcile_stats_repository import (
    ReconcileStatsRepository,
)


class _Session:
    def __init__(self) -> None:
        self.committed = False
        self.rolled_back = False
        self.closed = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def close(self) -> None:
        self.closed = True


class _Factory:
    def __init__(self) -> None:
        self.sessions: list[_Session] = []

    def __call__(self) -> _Session:
        session = _Session()
        self.sessions.append(session)
        return session


def _uow(factory: _Factory) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_repositories_share_the_scope_session_and_are_cached() -> None:
    factory = _Factory()
    async with _uow(factory) as uow:
        repo = uow.get_repository(ReconcileStatsRepository)
        assert isinstance(repo, SqlAlchemyReconcileStatsRepository)
        assert repo is uow.get_repository(ReconcileStatsRepository)
        assert uow.get_repository(AggregationSourceRepository)._session is uow.session

    assert factory.sessions[0].closed


def test_get_repository_outside_scope_raises() -> None:
    with pytest.raises(RuntimeError):
        _uow(_Factory()).get_repository(ReconcileStatsRepository)


@pytest.mark.asyncio
async def test_unregistered_repository_raises_key_error() -> None:
    async with _uow(_Factory()) as uow:
        with pytest.raises(KeyError):
            uow.get_repository(int)


@pytest.mark.asyncio
async def test_run_in_uow_commits_on_success() -> None:
    factory = _Factory()

    async def _work(tx: Any) -> str:
        return "ok"

    assert await run_in_uow(_uow(factory), _work) == "ok"
    assert factory.sessions[0].committed
    assert not factory.sessions[0].rolled_back


@pytest.mark.asyncio
async def test_run_in_uow_rolls_back_and_reraises() -> None:
    factory = _Factory()

    async def _work(tx: Any) -> None:
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await run_in_uow(_uow(factory), _work)

    session = factory.sessions[0]
    assert session.rolled_back
    assert not session.committed
    assert session.closed


@pytest.mark.asyncio
async def test_repo_factory_overrides_are_merged() -> None:
    sentinel = object()
    uow = SqlAlchemyUnitOfWork(
        session_factory=_Factory(),  # type: ignore[arg-type]
        repo_factories={ReconcileStatsRepository: lambda s: sentinel},
    )
    async with uow:
        assert uow.get_repository(ReconcileStatsRepository) is sentinel
        assert uow.get_repository(AggregationSourceRepository) is not sentinel
