# src/opsdesk_api/application/schemas/dto/stats_report.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Application DTOs for summary-row verification and rebuild."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from opsdesk_api.application.schemas.dto.base import BaseDTO
from opsdesk_api.domain.services.reconcile_figures import CounterDrift


class CounterDriftDTO(BaseDTO):
    """One drifted counter (values rendered as strings to keep decimals exact)."""

    field: str
    stored: str
    expected: str

    @classmethod
    def from_domain(cls, drift: CounterDrift) -> CounterDriftDTO:
        """Build the DTO from a domain drift record."""
        return cls(field=drift.field, stored=str(drift.stored), expected=str(drift.expected))


class EntityStatsReportDTO(BaseDTO):
    """Result of comparing an entity's summary rows with a full re-scan.

    Attributes:
        entity_id: Entity checked.
        charges: Drifted ``reconcile_stats_current`` counters.
        tasks: Drifted ``entity_task_stats`` counters.
        consistent: True when neither family drifted.
        corrected: True when correction deltas were applied.
    """

    entity_id: UUID
    charges: list[CounterDriftDTO]
    tasks: list[CounterDriftDTO]
    consistent: bool
    corrected: bool = False

    @classmethod
    def build(
        cls,
        entity_id: UUID,
        charges: Iterable[CounterDrift],
        tasks: Iterable[CounterDrift],
        *,
        corrected: bool = False,
    ) -> EntityStatsReportDTO:
        """Assemble a report from domain drift records."""
        charge_items = [CounterDriftDTO.from_domain(d) for d in charges]
        task_items = [CounterDriftDTO.from_domain(d) for d in tasks]
        return cls(
            entity_id=entity_id,
            charges=charge_items,
            tasks=task_items,
            consistent=not charge_items and not task_items,
            corrected=corrected,
        )


__all__ = ["CounterDriftDTO", "EntityStatsReportDTO"]
