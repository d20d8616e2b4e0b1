# src/opsdesk_api/infrastructure/database/models/base.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Declarative Base and canonical persistence mixins for Opsdesk.

This module defines:
    - A project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions (for stable Alembic diffs).
    - Persistence mixins for identity (UUIDv4), audit timestamps (UTC) and
      soft-delete.
    - A helper for schema-qualified foreign-key targets.

Notes:
    The default schema is read from ``DB_SCHEMA`` at import time so that
    models and migrations can be loaded without a full ``Settings`` object
    (``DATABASE_URL`` is not needed to build metadata).
"""

from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

__all__ = [
    "metadata",
    "Base",
    "DEFAULT_DB_SCHEMA",
    "IdentityMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    "qualified",
    "now_utc",
]

#: Default database schema for all tables (``DB_SCHEMA``; empty disables it).
DEFAULT_DB_SCHEMA: str | None = os.getenv("DB_SCHEMA", "public") or None

#: Deterministic naming conventions for Alembic-friendly diffs.
#: Ref: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS)


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)


def qualified(target: str) -> str:
    """Return ``target`` (``table.column``) prefixed with the default schema."""
    if DEFAULT_DB_SCHEMA:
        return f"{DEFAULT_DB_SCHEMA}.{target}"
    return target


class Base(DeclarativeBase):
    """Declarative Base for all ORM models.

    This base attaches the metadata with stable naming conventions and
    configures a default PostgreSQL schema via ``DEFAULT_DB_SCHEMA``.
    """

    metadata = metadata

    @declared_attr.directive
    def __table_args__(cls) -> tuple[dict[str, Any]] | tuple[()]:
        """Attach default schema when configured.

        Returns:
            tuple: Table arguments containing the schema mapping, if configured.
        """
        if DEFAULT_DB_SCHEMA:
            return ({"schema": DEFAULT_DB_SCHEMA},)
        return ()


class IdentityMixin:
    """Mixin providing a UUIDv4 primary key ``id`` column."""

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )


class TimestampMixin:
    """Mixin providing ``created_at`` and ``updated_at`` timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        onupdate=now_utc,
        server_default=func.now(),
    )


class SoftDeleteMixin:
    """Mixin providing a nullable ``deleted_at`` timestamp for soft-deletes."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_deleted(self) -> bool:
        """Return True if the row has been soft-deleted."""
        return self.deleted_at is not None

    def mark_deleted(self) -> None:
        """Mark the row as deleted."""
        self.deleted_at = now_utc()

    def restore(self) -> None:
        """Clear the soft-delete marker."""
        self.deleted_at = None
