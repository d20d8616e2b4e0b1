# src/opsdesk_api/adapters/repositories/base_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""
BaseRepository: shared foundation for Opsdesk repositories.

Purpose:
    Shared mechanics for all repositories:
      * Safe fetch helpers (optional, all).
      * UTC timestamp helper for audit fields.
      * Instrumented execution: latency histogram and error counter per
        logical operation, with the original exception re-raised.

Layer: adapters / repositories

Notes:
    * No business logic, no domain decisions.
    * Repositories never commit; use cases own transactions.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk_api.infrastructure.logging.logger import get_json_logger
from opsdesk_api.infrastructure.observability.metrics import (
    get_db_errors_total,
    get_db_operation_duration_seconds,
)

_logger = get_json_logger(__name__)

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):
    """Base class for all SQLAlchemy repositories."""

    _MODEL_NAME: ClassVar[str] = "unknown"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the target database.
        """
        self._session: AsyncSession = session
        self._metrics_hist = get_db_operation_duration_seconds()
        self._metrics_err = get_db_errors_total()

    @staticmethod
    def utc_now() -> datetime:
        """Return current UTC time with timezone info."""
        return datetime.now(UTC)

    @asynccontextmanager
    async def _instrumented(self, operation: str) -> AsyncIterator[None]:
        """Time ``operation`` and count failures, propagating any exception.

        Args:
            operation: Logical operation name used as the metric label.
        """
        start = time.perf_counter()
        outcome = "success"
        try:
            yield
        except Exception as exc:
            outcome = "error"
            with suppress(Exception):
                self._metrics_err.labels(
                    operation=operation,
                    model=self._MODEL_NAME,
                    reason=type(exc).__name__,
                ).inc()
            _logger.error(
                "db.operation.failed",
                exc_info=True,
                extra={"extra": {"operation": operation, "model": self._MODEL_NAME}},
            )
            raise
        finally:
            with suppress(Exception):
                self._metrics_hist.labels(
                    operation=operation,
                    model=self._MODEL_NAME,
                    outcome=outcome,
                ).observe(time.perf_counter() - start)

    async def fetch_optional(self, stmt: Select[Any]) -> TModel | None:
        """Execute a statement and return zero or one row."""
        res = await self._session.execute(stmt)
        return res.scalars().first()

    async def fetch_all(self, stmt: Select[Any]) -> list[TModel]:
        """Execute a statement and return all rows as a list."""
        res = await self._session.execute(stmt)
        return list(res.scalars().all())
