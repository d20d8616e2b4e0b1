# tests/unit/domain/test_charge_contribution.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest

from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta
from opsdesk_api.domain.enums.charges import ChargeStatus, ChargeType
from opsdesk_api.domain.exceptions.aggregation import (
    AggregationConfigurationError,
    UnknownChargeStatusError,
    UnknownChargeTypeError,
)
from opsdesk_api.domain.services.charge_contribution import (
    compute_charge_contribution,
    sum_charge_contributions,
)


@dataclass
class _RawCharge:
    """ORM-like record carrying raw string values."""

    amount: Any
    charge_type: Any
    status: Any
    deleted_at: datetime | None = None


def test_none_and_deleted_charges_contribute_nothing(charge_factory: Any) -> None:
    assert compute_charge_contribution(None).is_zero()
    assert compute_charge_contribution(charge_factory("50", deleted=True)).is_zero()


def test_not_paid_feeds_total_outstanding_and_pending(charge_factory: Any) -> None:
    delta = compute_charge_contribution(
        charge_factory("1000", charge_type=ChargeType.GOVERNMENT_FEE),
    )
    assert delta == ReconcileStatsDelta(
        government_fee_total=Decimal("1000"),
        government_fee_outstanding=Decimal("1000"),
        client_total_outstanding=Decimal("1000"),
        pending_charges_count=1,
    )


def test_paid_feeds_total_only(charge_factory: Any) -> None:
    delta = compute_charge_contribution(charge_factory("80", status=ChargeStatus.PAID))
    assert delta == ReconcileStatsDelta(service_fee_total=Decimal("80"))


def test_written_off_feeds_total_and_written_off(charge_factory: Any) -> None:
    delta = compute_charge_contribution(
        charge_factory(
            "12.34",
            charge_type=ChargeType.EXTERNAL_CHARGE,
            status=ChargeStatus.WRITTEN_OFF,
        ),
    )
    assert delta == ReconcileStatsDelta(
        external_charge_total=Decimal("12.34"),
        external_charge_written_off=Decimal("12.34"),
    )


def test_include_deleted_counts_a_soft_deleted_record(charge_factory: Any) -> None:
    charge = charge_factory("5", deleted=True)
    delta = compute_charge_contribution(charge, include_deleted=True)
    assert delta.service_fee_total == Decimal("5")


@pytest.mark.parametrize("charge_type", list(ChargeType))
def test_only_one_family_is_touched(charge_type: ChargeType, charge_factory: Any) -> None:
    delta = compute_charge_contribution(charge_factory("1", charge_type=charge_type))
    touched = {
        name.rsplit("_", 1)[0].removesuffix("_written")
        for name, value in delta.as_dict().items()
        if value and name not in ("client_total_outstanding", "pending_charges_count")
    }
    assert touched == {charge_type.family}


def test_raw_string_values_are_accepted() -> None:
    raw = _RawCharge(amount="9.99", charge_type="SERVICE_FEE", status="PAID")
    delta = compute_charge_contribution(raw)
    assert delta.service_fee_total == Decimal("9.99")


def test_unknown_charge_type_raises_configuration_error() -> None:
    with pytest.raises(UnknownChargeTypeError) as info:
        compute_charge_contribution(_RawCharge(amount=1, charge_type="COURIER", status="PAID"))
    assert isinstance(info.value, AggregationConfigurationError)
    assert info.value.details == {"charge_type": "COURIER"}


def test_unknown_charge_status_raises_configuration_error() -> None:
    with pytest.raises(UnknownChargeStatusError):
        compute_charge_contribution(
            _RawCharge(amount=1, charge_type="SERVICE_FEE", status="REFUNDED"),
        )


def test_sum_matches_full_rescan(charge_factory: Any) -> None:
    charges = [
        charge_factory("100"),
        charge_factory("50", status=ChargeStatus.PAID),
        charge_factory(
            "20", charge_type=ChargeType.GOVERNMENT_FEE, status=ChargeStatus.WRITTEN_OFF
        ),
        charge_factory("999", deleted=True),
    ]
    total = sum_charge_contributions(charges)
    assert total.service_fee_total == Decimal("150")
    assert total.service_fee_outstanding == Decimal("100")
    assert total.government_fee_written_off == Decimal("20")
    assert total.client_total_outstanding == Decimal("100")
    assert total.pending_charges_count == 1
