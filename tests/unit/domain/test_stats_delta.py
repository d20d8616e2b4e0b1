# tests/unit/domain/test_stats_delta.py
from __future__ import annotations

from decimal import Decimal

import pytest

from opsdesk_api.domain.entities.stats_delta import (
    ReconcileStatsDelta,
    TaskStatsDelta,
    diff,
    negate,
    zero,
)


def test_zero_has_every_field_at_zero() -> None:
    z = zero(ReconcileStatsDelta)
    assert z.is_zero()
    assert set(z.as_dict()) == set(ReconcileStatsDelta.field_names())
    assert len(ReconcileStatsDelta.field_names()) == 11
    assert TaskStatsDelta.field_names()[-1] == "total_tasks"


def test_negate_flips_every_field() -> None:
    d = ReconcileStatsDelta(
        service_fee_total=Decimal("10.50"),
        client_total_outstanding=Decimal("3"),
        pending_charges_count=2,
    )
    n = negate(d)
    assert n.service_fee_total == Decimal("-10.50")
    assert n.client_total_outstanding == Decimal("-3")
    assert n.pending_charges_count == -2
    assert (d + n).is_zero()
    assert -d == n


def test_diff_is_after_minus_before() -> None:
    before = TaskStatsDelta(pending=1, total_tasks=1)
    after = TaskStatsDelta(completed=1, total_tasks=1)

    d = diff(before, after)

    assert d == TaskStatsDelta(pending=-1, completed=1)
    assert before + d == after


def test_diff_of_equal_vectors_is_zero() -> None:
    v = ReconcileStatsDelta(external_charge_total=Decimal("7"))
    assert diff(v, v).is_zero()


def test_addition_is_commutative() -> None:
    a = TaskStatsDelta(pending=1, total_tasks=1)
    b = TaskStatsDelta(on_hold=2, total_tasks=2)
    assert a + b == b + a == TaskStatsDelta(pending=1, on_hold=2, total_tasks=3)


def test_mixing_delta_types_is_rejected() -> None:
    with pytest.raises(TypeError):
        _ = ReconcileStatsDelta() + TaskStatsDelta()  # type: ignore[operator]
    with pytest.raises(TypeError):
        diff(ReconcileStatsDelta(), TaskStatsDelta())  # type: ignore[type-var]
