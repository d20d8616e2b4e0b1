# src/opsdesk_api/domain/enums/reconcile.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Enums for the outstanding-entities read side and stats bookkeeping."""

from __future__ import annotations

from enum import Enum


class StatsFamily(str, Enum):
    """Aggregate family maintained by the delta protocol."""

    CHARGES = "charges"
    TASKS = "tasks"


class LifecycleOperation(str, Enum):
    """Record lifecycle transition that produced a delta."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RESTORE = "restore"
    HARD_DELETE = "hard_delete"
    REASSIGN = "reassign"
    BULK_UPDATE = "bulk_update"
    REBUILD = "rebuild"


class OutstandingSortField(str, Enum):
    """Allow-listed sort keys for the outstanding-entities listing."""

    CLIENT_TOTAL_OUTSTANDING = "client_total_outstanding"
    PENDING_CHARGES_COUNT = "pending_charges_count"
    SERVICE_FEE_OUTSTANDING = "service_fee_outstanding"
    GOVERNMENT_FEE_OUTSTANDING = "government_fee_outstanding"
    EXTERNAL_CHARGE_OUTSTANDING = "external_charge_outstanding"
    SERVICE_FEE_TOTAL = "service_fee_total"
    GOVERNMENT_FEE_TOTAL = "government_fee_total"
    EXTERNAL_CHARGE_TOTAL = "external_charge_total"
    ENTITY_NAME = "entity_name"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


__all__ = ["StatsFamily", "LifecycleOperation", "OutstandingSortField", "SortOrder"]
