# src/opsdesk_api/application/uow.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Unit of Work (Application Layer).

Purpose:
    Define the transaction handle passed through every aggregation entry
    point. A mutation to a charge or task and the summary-row deltas it
    produces must commit or roll back together, so the lifecycle adapters
    receive the caller's active UnitOfWork instead of opening their own.

    This module is infrastructure-agnostic:
        * No SQLAlchemy / DB imports.
        * No concrete repository implementations.

Layer:
    application
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from types import TracebackType
from typing import Any, Protocol, TypeVar, cast, runtime_checkable

TResult = TypeVar("TResult")
TRepo = TypeVar("TRepo")


@runtime_checkable
class UnitOfWork(Protocol, AbstractAsyncContextManager["UnitOfWork"]):
    """Transaction handle shared by a mutation and its summary-row deltas."""

    async def __aenter__(self) -> UnitOfWork:
        """Enter the transactional scope and return the active UoW."""
        raise NotImplementedError

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Exit the transactional scope (rolling back on error)."""
        raise NotImplementedError

    async def commit(self) -> None:
        """Commit all pending changes for this UnitOfWork."""
        raise NotImplementedError

    async def rollback(self) -> None:
        """Roll back any pending changes for this UnitOfWork."""
        raise NotImplementedError

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return the repository bound to this transaction for ``repo_type``.

        Args:
            repo_type: Repository protocol (or concrete class) used as the key.
        """
        raise NotImplementedError


def resolve_repository(tx: Any, repo_type: type[TRepo], attr: str) -> TRepo:  # noqa: UP047
    """Return the ``repo_type`` repository of an active transaction.

    Test doubles may expose the repository directly as attribute ``attr``;
    real units of work resolve it through :meth:`UnitOfWork.get_repository`.

    Args:
        tx: Active UnitOfWork (or compatible fake).
        repo_type: Repository protocol key.
        attr: Attribute name checked first (e.g. ``reconcile_stats_repo``).
    """
    if hasattr(tx, attr):
        return cast(TRepo, getattr(tx, attr))
    return cast(TRepo, tx.get_repository(repo_type))


async def run_in_uow(  # noqa: UP047
    uow: UnitOfWork,
    fn: Callable[[UnitOfWork], Awaitable[TResult]],
) -> TResult:
    """Execute a coroutine against a UnitOfWork with commit/rollback semantics.

    On success the transaction is committed; on exception it is rolled back
    and the exception is re-raised unchanged.

    Args:
        uow: UnitOfWork instance providing transactional boundaries.
        fn: Callable that receives the active UnitOfWork and returns a result.

    Returns:
        TResult: The result of the callable.
    """
    async with uow as tx:
        try:
            result = await fn(tx)
        except Exception:
            await tx.rollback()
            raise
        else:
            await tx.commit()
            return result


__all__ = ["UnitOfWork", "resolve_repository", "run_in_uow"]
