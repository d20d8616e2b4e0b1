# src/opsdesk_api/domain/entities/stats_delta.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Delta vectors for the per-entity summary rows.

Purpose:
    Fixed-shape, signed numeric records describing a change to one summary
    row, together with the algebra used by the lifecycle adapters:

        zero()               every field 0
        negate(v)            every field negated
        diff(before, after)  field-wise ``after - before``
        a + b                field-wise sum (bulk coalescing)

    Field names are identical to the summary-table column names, so
    :meth:`StatsDelta.as_dict` is directly usable as an upsert payload.

Layer:
    domain/entities

Notes:
    The algebra is additive and commutative. Applying ``diff(before, after)``
    under increment semantics is therefore equivalent to applying
    ``negate(before)`` followed by ``after``, in any order relative to other
    concurrent deltas.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Self, TypeVar

_ZERO = Decimal("0")

TDelta = TypeVar("TDelta", bound="StatsDelta")


@dataclass(frozen=True, slots=True)
class StatsDelta:
    """Base class for summary-row delta vectors."""

    @classmethod
    def zero(cls) -> Self:
        """Return the all-zero vector."""
        return cls()

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Return the counter names in declaration order."""
        return tuple(f.name for f in fields(cls))

    def as_dict(self) -> dict[str, Decimal | int]:
        """Return a column → value mapping."""
        return {name: getattr(self, name) for name in self.field_names()}

    def is_zero(self) -> bool:
        """Return True when every counter is zero."""
        return all(value == 0 for value in self.as_dict().values())

    def negate(self) -> Self:
        """Return the field-wise negation."""
        return type(self)(**{k: -v for k, v in self.as_dict().items()})

    def diff(self, after: Self) -> Self:
        """Return ``after - self`` field-wise (self is the *before* state)."""
        self._check_same_shape(after)
        return type(self)(**{k: getattr(after, k) - v for k, v in self.as_dict().items()})

    def __add__(self, other: Self) -> Self:
        self._check_same_shape(other)
        return type(self)(**{k: v + getattr(other, k) for k, v in self.as_dict().items()})

    def __neg__(self) -> Self:
        return self.negate()

    def _check_same_shape(self, other: object) -> None:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot combine {type(self).__name__} with {type(other).__name__}",
            )


@dataclass(frozen=True, slots=True)
class ReconcileStatsDelta(StatsDelta):
    """Signed change to a ``reconcile_stats_current`` row."""

    service_fee_total: Decimal = _ZERO
    service_fee_outstanding: Decimal = _ZERO
    service_fee_written_off: Decimal = _ZERO

    government_fee_total: Decimal = _ZERO
    government_fee_outstanding: Decimal = _ZERO
    government_fee_written_off: Decimal = _ZERO

    external_charge_total: Decimal = _ZERO
    external_charge_outstanding: Decimal = _ZERO
    external_charge_written_off: Decimal = _ZERO

    client_total_outstanding: Decimal = _ZERO
    pending_charges_count: int = 0


@dataclass(frozen=True, slots=True)
class TaskStatsDelta(StatsDelta):
    """Signed change to an ``entity_task_stats`` row."""

    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    on_hold: int = 0
    pending_client_input: int = 0
    total_tasks: int = 0


def zero(delta_type: type[TDelta]) -> TDelta:
    """Return the zero vector of ``delta_type``."""
    return delta_type.zero()


def negate(delta: TDelta) -> TDelta:
    """Return ``-delta``; used to remove a record's contribution."""
    return delta.negate()


def diff(before: TDelta, after: TDelta) -> TDelta:
    """Return the net adjustment turning ``before`` into ``after``."""
    return before.diff(after)


__all__ = [
    "StatsDelta",
    "ReconcileStatsDelta",
    "TaskStatsDelta",
    "zero",
    "negate",
    "diff",
]
