# src/opsdesk_api/domain/services/task_contribution.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Task contribution function.

Maps a task to the :class:`TaskStatsDelta` it adds to its entity's
``entity_task_stats`` row: one status counter and ``total_tasks`` set to 1,
or the zero vector for a missing / soft-deleted task.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from opsdesk_api.domain.entities.stats_delta import TaskStatsDelta
from opsdesk_api.domain.entities.task import TaskRecord
from opsdesk_api.domain.enums.tasks import TaskStatus
from opsdesk_api.domain.exceptions.aggregation import UnknownTaskStatusError

#: Total mapping status → counter column. Must cover every TaskStatus member.
TASK_STATUS_COUNTERS: Mapping[TaskStatus, str] = MappingProxyType(
    {
        TaskStatus.PENDING: "pending",
        TaskStatus.IN_PROGRESS: "in_progress",
        TaskStatus.COMPLETED: "completed",
        TaskStatus.CANCELLED: "cancelled",
        TaskStatus.ON_HOLD: "on_hold",
        TaskStatus.PENDING_CLIENT_INPUT: "pending_client_input",
    }
)


def resolve_task_status(value: Any) -> TaskStatus:
    """Return the :class:`TaskStatus` for an enum member or raw string.

    Raises:
        UnknownTaskStatusError: If the value is not a known status.
    """
    try:
        return TaskStatus(value)
    except ValueError as exc:
        raise UnknownTaskStatusError(value) from exc


def status_counter(status: Any) -> str:
    """Return the counter column for ``status``.

    Raises:
        UnknownTaskStatusError: If the status is not a known TaskStatus or has
            no counter column.
    """
    member = resolve_task_status(status)
    try:
        return TASK_STATUS_COUNTERS[member]
    except KeyError as exc:
        raise UnknownTaskStatusError(status) from exc


def compute_task_contribution(
    task: TaskRecord | None,
    *,
    include_deleted: bool = False,
) -> TaskStatsDelta:
    """Return the contribution of ``task`` to its entity's task counters."""
    if task is None or (task.deleted_at is not None and not include_deleted):
        return TaskStatsDelta.zero()

    counter = status_counter(task.status)
    return TaskStatsDelta(**{counter: 1, "total_tasks": 1})


def sum_task_contributions(tasks: Iterable[TaskRecord]) -> TaskStatsDelta:
    """Return the full re-scan total of ``tasks``."""
    total = TaskStatsDelta.zero()
    for task in tasks:
        total = total + compute_task_contribution(task)
    return total


__all__ = [
    "TASK_STATUS_COUNTERS",
    "resolve_task_status",
    "status_counter",
    "compute_task_contribution",
    "sum_task_contributions",
]
