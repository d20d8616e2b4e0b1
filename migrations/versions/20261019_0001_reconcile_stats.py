"""Create entities, tasks, task charges and the per-entity summary tables.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

This migration:
  * Creates source tables: entities, tasks, task_charges (soft-delete via deleted_at).
  * Creates summary tables: reconcile_stats_current, entity_task_stats, keyed by
    entity_id and maintained by upsert-with-increment.

Notes:
  - Money columns are NUMERIC(14, 2); counters are INTEGER defaulting to 0.
  - Summary tables carry no FK to entities.
"""

from __future__ import annotations

import os
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

SCHEMA = os.getenv("DB_SCHEMA", "public") or None

_FAMILIES = ("service_fee", "government_fee", "external_charge")
_TASK_COUNTERS = (
    "pending",
    "in_progress",
    "completed",
    "cancelled",
    "on_hold",
    "pending_client_input",
    "total_tasks",
)


def _fk(target: str) -> str:
    return f"{SCHEMA}.{target}" if SCHEMA else target


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), server_default="0", nullable=False)


def _count(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer, server_default="0", nullable=False)


def upgrade() -> None:
    """Apply the migration."""
    if SCHEMA:
        op.get_bind().exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}")

    op.create_table(
        "entities",
        sa.Column("id", sa.UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_entities"),
        schema=SCHEMA,
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.UUID, nullable=False),
        sa.Column("entity_id", sa.UUID, nullable=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.ForeignKeyConstraint(
            ["entity_id"],
            [_fk("entities.id")],
            name="fk_tasks_entity_id_entities",
            ondelete="SET NULL",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_tasks_entity_id_deleted_at",
        "tasks",
        ["entity_id", "deleted_at"],
        schema=SCHEMA,
    )

    op.create_table(
        "task_charges",
        sa.Column("id", sa.UUID, nullable=False),
        sa.Column("task_id", sa.UUID, nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("charge_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("bearer", sa.String(16), nullable=False),
        sa.Column("remark", sa.Text, nullable=True),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_task_charges"),
        sa.ForeignKeyConstraint(
            ["task_id"],
            [_fk("tasks.id")],
            name="fk_task_charges_task_id_tasks",
            ondelete="CASCADE",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_task_charges_task_id_deleted_at",
        "task_charges",
        ["task_id", "deleted_at"],
        schema=SCHEMA,
    )

    op.create_table(
        "reconcile_stats_current",
        sa.Column("entity_id", sa.UUID, nullable=False),
        *[
            _money(f"{family}_{suffix}")
            for family in _FAMILIES
            for suffix in ("total", "outstanding", "written_off")
        ],
        _money("client_total_outstanding"),
        _count("pending_charges_count"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("entity_id", name="pk_reconcile_stats_current"),
        schema=SCHEMA,
    )

    op.create_table(
        "entity_task_stats",
        sa.Column("entity_id", sa.UUID, nullable=False),
        *[_count(name) for name in _TASK_COUNTERS],
        *_timestamps(),
        sa.PrimaryKeyConstraint("entity_id", name="pk_entity_task_stats"),
        schema=SCHEMA,
    )


def downgrade() -> None:
    """Revert the migration."""
    op.drop_table("entity_task_stats", schema=SCHEMA)
    op.drop_table("reconcile_stats_current", schema=SCHEMA)
    op.drop_index("ix_task_charges_task_id_deleted_at", table_name="task_charges", schema=SCHEMA)
    op.drop_table("task_charges", schema=SCHEMA)
    op.drop_index("ix_tasks_entity_id_deleted_at", table_name="tasks", schema=SCHEMA)
    op.drop_table("tasks", schema=SCHEMA)
    op.drop_table("entities", schema=SCHEMA)
