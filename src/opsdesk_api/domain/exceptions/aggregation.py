# src/opsdesk_api/domain/exceptions/aggregation.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Aggregation (reconcile stats / task stats) domain exceptions.

Purpose:
    Error types raised by the contribution functions and the consistency
    checks of the summary-row engine.

Layer:
    domain

Notes:
    - Configuration errors are fatal: they indicate that an enum and the
      counter schema have drifted apart. They are never caught inside the
      aggregation code; the enclosing transaction aborts.
    - Database failures are not wrapped here; SQLAlchemy errors propagate
      unchanged so the caller's rollback sees the original cause.
"""

from __future__ import annotations

from typing import Any

from opsdesk_api.domain.exceptions.base import DomainError


class AggregationError(DomainError):
    """Base class for summary-row aggregation errors."""

    code = "AGGREGATION_ERROR"


class AggregationConfigurationError(AggregationError):
    """An enum value has no counter mapping. Not recoverable locally."""

    code = "AGGREGATION_CONFIGURATION_ERROR"


class UnknownTaskStatusError(AggregationConfigurationError):
    """Raised when a task status has no matching ``entity_task_stats`` counter."""

    code = "UNKNOWN_TASK_STATUS"

    def __init__(self, status: Any) -> None:
        super().__init__(f"Unknown task status: {status}", details={"status": str(status)})
        self.status = status


class UnknownChargeTypeError(AggregationConfigurationError):
    """Raised when a charge type has no counter family."""

    code = "UNKNOWN_CHARGE_TYPE"

    def __init__(self, charge_type: Any) -> None:
        super().__init__(
            f"Unknown charge type: {charge_type}",
            details={"charge_type": str(charge_type)},
        )
        self.charge_type = charge_type


class UnknownChargeStatusError(AggregationConfigurationError):
    """Raised when a charge status is outside the known payment statuses."""

    code = "UNKNOWN_CHARGE_STATUS"

    def __init__(self, status: Any) -> None:
        super().__init__(f"Unknown charge status: {status}", details={"status": str(status)})
        self.status = status


class StatsConsistencyError(AggregationError):
    """Stored summary values differ from a full re-scan of the source rows."""

    code = "STATS_CONSISTENCY_ERROR"


__all__ = [
    "AggregationError",
    "AggregationConfigurationError",
    "UnknownTaskStatusError",
    "UnknownChargeTypeError",
    "UnknownChargeStatusError",
    "StatsConsistencyError",
]
