# src/opsdesk_api/domain/services/charge_contribution.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Charge contribution function.

Purpose:
    Map a single billing charge to the :class:`ReconcileStatsDelta` it adds to
    its entity's ``reconcile_stats_current`` row.

Rules:
    * ``None`` or soft-deleted charge → zero vector.
    * ``<family>_total`` = amount, whatever the status.
    * NOT_PAID → ``<family>_outstanding`` = amount,
      ``client_total_outstanding`` = amount, ``pending_charges_count`` = 1.
    * WRITTEN_OFF → ``<family>_written_off`` = amount.
    * PAID → total only.

    Exactly one family is touched by a non-zero contribution.

Layer:
    domain/services

Notes:
    Unknown charge types or statuses raise a configuration error instead of
    silently dropping the amount.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

from opsdesk_api.domain.entities.charge import ChargeRecord
from opsdesk_api.domain.entities.stats_delta import ReconcileStatsDelta
from opsdesk_api.domain.enums.charges import ChargeStatus, ChargeType
from opsdesk_api.domain.exceptions.aggregation import (
    UnknownChargeStatusError,
    UnknownChargeTypeError,
)


def resolve_charge_type(value: Any) -> ChargeType:
    """Return the :class:`ChargeType` for an enum member or raw string.

    Raises:
        UnknownChargeTypeError: If the value is not a known charge type.
    """
    try:
        return ChargeType(value)
    except ValueError as exc:
        raise UnknownChargeTypeError(value) from exc


def resolve_charge_status(value: Any) -> ChargeStatus:
    """Return the :class:`ChargeStatus` for an enum member or raw string.

    Raises:
        UnknownChargeStatusError: If the value is not a known status.
    """
    try:
        return ChargeStatus(value)
    except ValueError as exc:
        raise UnknownChargeStatusError(value) from exc


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Charge amount is not numeric: {value!r}") from exc


def compute_charge_contribution(
    charge: ChargeRecord | None,
    *,
    include_deleted: bool = False,
) -> ReconcileStatsDelta:
    """Return the contribution of ``charge`` to its entity's summary row.

    Args:
        charge: Charge record, or ``None``.
        include_deleted: Ignore ``deleted_at``. Used by restore, where the
            caller may still hold the pre-restore record.

    Returns:
        The signed delta vector for this charge.
    """
    if charge is None or (charge.deleted_at is not None and not include_deleted):
        return ReconcileStatsDelta.zero()

    charge_type = resolve_charge_type(charge.charge_type)
    status = resolve_charge_status(charge.status)
    amount = _to_decimal(charge.amount)
    family = charge_type.family

    values: dict[str, Decimal | int] = {f"{family}_total": amount}

    if status is ChargeStatus.NOT_PAID:
        values[f"{family}_outstanding"] = amount
        values["client_total_outstanding"] = amount
        values["pending_charges_count"] = 1
    elif status is ChargeStatus.WRITTEN_OFF:
        values[f"{family}_written_off"] = amount

    return ReconcileStatsDelta(**values)  # type: ignore[arg-type]


def sum_charge_contributions(charges: Iterable[ChargeRecord]) -> ReconcileStatsDelta:
    """Return the full re-scan total of ``charges`` (deleted ones contribute zero)."""
    total = ReconcileStatsDelta.zero()
    for charge in charges:
        total = total + compute_charge_contribution(charge)
    return total


__all__ = [
    "compute_charge_contribution",
    "sum_charge_contributions",
    "resolve_charge_type",
    "resolve_charge_status",
]
