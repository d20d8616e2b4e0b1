# src/opsdesk_api/domain/entities/charge.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Task charge domain entity.

Purpose:
    Represent the aggregation-relevant view of a billing charge attached to a
    task. The contribution function only reads ``amount``, ``charge_type``,
    ``status`` and ``deleted_at``; any object exposing those attributes
    (including ORM rows) satisfies :class:`ChargeRecord`.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from opsdesk_api.domain.enums.charges import ChargeBearer, ChargeStatus, ChargeType


class ChargeRecord(Protocol):
    """Structural contract for anything the charge contribution can read."""

    @property
    def amount(self) -> Any: ...

    @property
    def charge_type(self) -> Any: ...

    @property
    def status(self) -> Any: ...

    @property
    def deleted_at(self) -> datetime | None: ...


@dataclass(frozen=True, slots=True)
class TaskCharge:
    """A billing charge owned by a task.

    Attributes:
        id: Charge identifier.
        task_id: Owning task; the task's entity decides which summary row the
            charge feeds.
        amount: Original charge amount.
        charge_type: Charge-type family.
        status: Payment status.
        deleted_at: Soft-delete marker; ``None`` while active.
        title: Display title (not aggregated).
        bearer: Who bears the charge (not aggregated).
        remark: Free-form note (not aggregated).
    """

    id: UUID
    task_id: UUID
    amount: Decimal
    charge_type: ChargeType
    status: ChargeStatus
    deleted_at: datetime | None = None
    title: str | None = None
    bearer: ChargeBearer = ChargeBearer.CLIENT
    remark: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

    @property
    def is_deleted(self) -> bool:
        """Return True if the charge has been soft-deleted."""
        return self.deleted_at is not None


__all__ = ["ChargeRecord", "TaskCharge"]
