# src/opsdesk_api/domain/services/reconcile_figures.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Read-time figures and drift detection for summary rows.

Purpose:
    * Derive the ``paid`` figure of a charge family at read time as
      ``total - outstanding - written_off``. It is never stored.
    * Compare a stored summary vector against a full re-scan and list the
      drifted counters.

Layer:
    domain/services

Notes:
    A negative ``paid`` value can only come from a summary row that drifted
    from its source charges. The figure is clamped to zero and flagged so the
    caller can raise a consistency alarm.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from opsdesk_api.domain.entities.stats_delta import StatsDelta

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class FamilyFigures:
    """Money figures for one charge-type family.

    Attributes:
        total: Sum of all active charge amounts.
        outstanding: NOT_PAID share of ``total``.
        written_off: WRITTEN_OFF share of ``total``.
        paid: Derived PAID share, clamped at zero.
        paid_shortfall: Amount by which the raw derived figure was negative
            (zero for a consistent row).
    """

    total: Decimal
    outstanding: Decimal
    written_off: Decimal
    paid: Decimal
    paid_shortfall: Decimal = _ZERO

    @property
    def is_consistent(self) -> bool:
        """Return False when the derived paid figure had to be clamped."""
        return self.paid_shortfall == 0


def derive_family_figures(
    total: Decimal,
    outstanding: Decimal,
    written_off: Decimal,
) -> FamilyFigures:
    """Return the family figures with the derived ``paid`` amount."""
    raw_paid = total - outstanding - written_off
    if raw_paid < 0:
        return FamilyFigures(
            total=total,
            outstanding=outstanding,
            written_off=written_off,
            paid=_ZERO,
            paid_shortfall=-raw_paid,
        )
    return FamilyFigures(
        total=total,
        outstanding=outstanding,
        written_off=written_off,
        paid=raw_paid,
    )


@dataclass(frozen=True, slots=True)
class CounterDrift:
    """A single summary counter that differs from the re-scan value."""

    field: str
    stored: Decimal | int
    expected: Decimal | int


def find_drift(stored: StatsDelta, expected: StatsDelta) -> tuple[CounterDrift, ...]:
    """Return the counters where ``stored`` differs from ``expected``.

    Both vectors must be of the same type.
    """
    correction = stored.diff(expected)
    return tuple(
        CounterDrift(field=name, stored=getattr(stored, name), expected=getattr(expected, name))
        for name, value in correction.as_dict().items()
        if value != 0
    )


__all__ = ["FamilyFigures", "derive_family_figures", "CounterDrift", "find_drift"]
