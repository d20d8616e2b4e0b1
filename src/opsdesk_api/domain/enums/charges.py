# src/opsdesk_api/domain/enums/charges.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Billing charge enums.

Purpose:
    Define the closed vocabularies used by task charges: the charge-type
    family a charge belongs to, its payment status, and who bears it.

Layer:
    domain/enums

Notes:
    - Pure domain types:
        * No logging.
        * No persistence concerns.
"""

from __future__ import annotations

from enum import Enum


class ChargeType(str, Enum):
    """Charge-type family. Each family owns one triple of summary counters."""

    SERVICE_FEE = "SERVICE_FEE"
    GOVERNMENT_FEE = "GOVERNMENT_FEE"
    EXTERNAL_CHARGE = "EXTERNAL_CHARGE"

    @property
    def family(self) -> str:
        """Return the summary-column prefix for this family (e.g. ``service_fee``)."""
        return self.value.lower()


class ChargeStatus(str, Enum):
    """Payment status of a charge."""

    NOT_PAID = "NOT_PAID"
    PAID = "PAID"
    WRITTEN_OFF = "WRITTEN_OFF"


class ChargeBearer(str, Enum):
    """Party that ultimately bears a charge."""

    CLIENT = "CLIENT"
    FIRM = "FIRM"


__all__ = ["ChargeType", "ChargeStatus", "ChargeBearer"]
