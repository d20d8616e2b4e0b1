# src/opsdesk_api/domain/entities/task.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Task domain entity (aggregation-relevant subset)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from opsdesk_api.domain.enums.tasks import TaskStatus


class TaskRecord(Protocol):
    """Structural contract for anything the task contribution can read."""

    @property
    def entity_id(self) -> UUID | None: ...

    @property
    def status(self) -> Any: ...

    @property
    def deleted_at(self) -> datetime | None: ...


@dataclass(frozen=True, slots=True)
class Task:
    """A task, optionally linked to an entity.

    Tasks with ``entity_id=None`` never aggregate.
    """

    id: UUID
    entity_id: UUID | None
    status: TaskStatus
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """Return True if the task has been soft-deleted."""
        return self.deleted_at is not None


__all__ = ["TaskRecord", "Task"]
