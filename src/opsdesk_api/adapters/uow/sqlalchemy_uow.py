# src/opsdesk_api/adapters/uow/sqlalchemy_uow.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Implement the application-layer UnitOfWork protocol on one AsyncSession.
    Every repository resolved inside the scope shares that session, so a
    charge/task write and the summary-row increments it triggers land in the
    same database transaction.

Layer:
    adapters/uow
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsdesk_api.adapters.repositories.aggregation_source_repository import (
    SqlAlchemyAggregationSourceRepository,
)
from opsdesk_api.adapters.repositories.entity_task_stats_repository import (
    SqlAlchemyEntityTaskStatsRepository,
)
from opsdesk_api.adapters.repositories.reconcile_stats_repository import (
    SqlAlchemyReconcileStatsRepository,
)
from opsdesk_api.application.uow import UnitOfWork
from opsdesk_api.domain.interfaces.repositories.aggregation_source_repository import (
    AggregationSourceRepository,
)
from opsdesk_api.domain.interfaces.repositories.entity_task_stats_repository import (
    EntityTaskStatsRepository,
)
from opsdesk_api.domain.interfaces.repositories.reconcile_stats_repository import (
    ReconcileStatsRepository,
)

RepoFactory = Callable[[AsyncSession], Any]


def default_repo_factories() -> dict[type[Any], RepoFactory]:
    """Return the default interface → implementation wiring."""
    return {
        ReconcileStatsRepository: lambda s: SqlAlchemyReconcileStatsRepository(session=s),
        EntityTaskStatsRepository: lambda s: SqlAlchemyEntityTaskStatsRepository(session=s),
        AggregationSourceRepository: lambda s: SqlAlchemyAggregationSourceRepository(session=s),
    }


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy-based UnitOfWork implementation.

    Usage:

        async with SqlAlchemyUnitOfWork(session_factory=sm) as uow:
            repo = uow.get_repository(ReconcileStatsRepository)
            ...
            await uow.commit()
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], RepoFactory] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory: Factory for creating new AsyncSession instances.
            repo_factories: Optional overrides merged over
                :func:`default_repo_factories`.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._repo_factories: dict[type[Any], RepoFactory] = {
            **default_repo_factories(),
            **(dict(repo_factories) if repo_factories is not None else {}),
        }
        self._repos: dict[type[Any], Any] = {}
        self._committed = False
        self._rolled_back = False

    @property
    def session(self) -> AsyncSession:
        """Return the active session.

        Raises:
            RuntimeError: If called outside of an active scope.
        """
        if self._session is None:
            raise RuntimeError("UnitOfWork has no active session.")
        return self._session

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Open a new AsyncSession.

        Raises:
            RuntimeError: If a session is already active (nested usage).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active; nested usage is not supported.")

        self._session = self._session_factory()
        self._committed = False
        self._rolled_back = False
        self._repos.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Roll back on error, then close the session. Exceptions propagate."""
        try:
            if exc_type is not None and not self._rolled_back:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None
            self._repos.clear()
        return None

    async def commit(self) -> None:
        """Commit the current transaction (no-op once committed or rolled back).

        Raises:
            RuntimeError: If called without an active session.
        """
        if self._session is None:
            raise RuntimeError("Cannot commit: UnitOfWork has no active session.")
        if self._committed or self._rolled_back:
            return

        await self._session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the current transaction if one is active."""
        if self._session is None or self._rolled_back or self._committed:
            return

        await self._session.rollback()
        self._rolled_back = True

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return the repository for ``repo_type`` bound to the active session.

        Instances are cached for the lifetime of the scope.

        Raises:
            RuntimeError: If called outside of an active UnitOfWork context.
            KeyError: If no factory is registered for ``repo_type``.
        """
        if self._session is None:
            raise RuntimeError(
                "get_repository() called outside of an active UnitOfWork scope. "
                "Use 'async with uow:' before requesting repositories.",
            )

        if repo_type in self._repos:
            return self._repos[repo_type]

        try:
            factory = self._repo_factories[repo_type]
        except KeyError as exc:
            raise KeyError(f"No repository factory registered for type {repo_type!r}.") from exc

        repo = factory(self._session)
        self._repos[repo_type] = repo
        return repo
