# src/opsdesk_api/domain/enums/tasks.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Task enums."""

from __future__ import annotations

from enum import Enum


class TaskStatus(str, Enum):
    """Workflow status of a task.

    Every member must have a matching counter column on ``entity_task_stats``;
    see :mod:`opsdesk_api.domain.services.task_contribution`.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"
    PENDING_CLIENT_INPUT = "PENDING_CLIENT_INPUT"


__all__ = ["TaskStatus"]
