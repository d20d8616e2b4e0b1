# src/opsdesk_api/domain/entities/entity.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Entity (client/business) metadata used to enrich summary listings."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class EntityProfile:
    """Read-only client entity metadata."""

    id: UUID
    name: str
    email: str | None = None
    status: str | None = None


__all__ = ["EntityProfile"]
