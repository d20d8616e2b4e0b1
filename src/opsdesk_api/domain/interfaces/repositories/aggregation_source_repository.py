# src/opsdesk_api/domain/interfaces/repositories/aggregation_source_repository.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Source-row access for full re-scans.

Purpose:
    Read the charge and task rows the summary tables are derived from, so a
    consistency check can recompute an entity's totals independently of the
    delta protocol.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from opsdesk_api.domain.entities.charge import TaskCharge
from opsdesk_api.domain.entities.task import Task


class AggregationSourceRepository(Protocol):
    """Protocol for reading aggregation source rows."""

    async def list_active_charges(self, entity_id: UUID) -> Sequence[TaskCharge]:
        """Return non-deleted charges whose owning task belongs to ``entity_id``."""

    async def list_active_tasks(self, entity_id: UUID) -> Sequence[Task]:
        """Return non-deleted tasks assigned to ``entity_id``."""

    async def list_active_charges_for_task(self, task_id: UUID) -> Sequence[TaskCharge]:
        """Return non-deleted charges of a single task."""
