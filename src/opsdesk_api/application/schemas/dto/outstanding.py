# src/opsdesk_api/application/schemas/dto/outstanding.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Application DTOs for the outstanding-entities listing.

Synopsis:
    Strict (Pydantic v2) query and response DTOs. The query DTO is lenient
    where the listing has always been lenient (unknown sort keys, oversized
    entity allowlists) and strict elsewhere (unknown charge types).

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from opsdesk_api.application.schemas.dto.base import BaseDTO
from opsdesk_api.domain.enums.charges import ChargeType
from opsdesk_api.domain.enums.reconcile import OutstandingSortField, SortOrder

#: Maximum number of entity ids honoured by the allowlist filter.
MAX_ENTITY_IDS = 10


class OutstandingQueryDTO(BaseDTO):
    """Query parameters for the outstanding-entities listing.

    Attributes:
        page: 1-based page number; non-positive values fall back to 1.
        page_size: Requested page size; normalized by the use case.
        charge_type: Only entities with positive outstanding in this family.
        entity_ids: Allowlist, truncated to the first ten ids.
        sort_by: Sort key; unknown keys fall back to
            ``client_total_outstanding``.
        sort_order: ``asc`` or ``desc``; anything else means ``desc``.
    """

    page: int = 1
    page_size: int | None = None
    charge_type: ChargeType | None = None
    entity_ids: list[UUID] = Field(default_factory=list)
    sort_by: OutstandingSortField = OutstandingSortField.CLIENT_TOTAL_OUTSTANDING
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("page", mode="before")
    @classmethod
    def _default_page(cls, value: Any) -> int:
        try:
            page = int(value)
        except (TypeError, ValueError):
            return 1
        return page if page > 0 else 1

    @field_validator("page_size", mode="before")
    @classmethod
    def _coerce_page_size(cls, value: Any) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("charge_type", mode="before")
    @classmethod
    def _upper_charge_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or None
        return value

    @field_validator("entity_ids", mode="before")
    @classmethod
    def _truncate_entity_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)[:MAX_ENTITY_IDS]
        return value

    @field_validator("sort_by", mode="before")
    @classmethod
    def _fallback_sort_by(cls, value: Any) -> OutstandingSortField:
        try:
            return OutstandingSortField(value)
        except ValueError:
            return OutstandingSortField.CLIENT_TOTAL_OUTSTANDING

    @field_validator("sort_order", mode="before")
    @classmethod
    def _fallback_sort_order(cls, value: Any) -> SortOrder:
        if isinstance(value, str) and value.strip().lower() == SortOrder.ASC.value:
            return SortOrder.ASC
        if value is SortOrder.ASC:
            return SortOrder.ASC
        return SortOrder.DESC


class FamilyMoneyDTO(BaseDTO):
    """Money figures for one charge-type family (``paid`` derived at read time)."""

    total: Decimal
    outstanding: Decimal
    written_off: Decimal
    paid: Decimal


class EntityMoneyDTO(BaseDTO):
    """Money block of one listing row."""

    service_fee: FamilyMoneyDTO
    government_fee: FamilyMoneyDTO
    external_charge: FamilyMoneyDTO
    client_total_outstanding: Decimal
    pending_charges_count: int


class EntityRefDTO(BaseDTO):
    """Entity metadata attached to a listing row."""

    id: UUID
    name: str
    email: str | None = None
    status: str | None = None


class TaskCountersDTO(BaseDTO):
    """Task-status counters of one entity."""

    pending: int
    in_progress: int
    completed: int
    cancelled: int
    on_hold: int
    pending_client_input: int
    total_tasks: int


class OutstandingEntityDTO(BaseDTO):
    """One row of the outstanding listing."""

    entity_id: UUID
    entity: EntityRefDTO | None = None
    money: EntityMoneyDTO
    tasks: TaskCountersDTO | None = None


class OutstandingCardsDTO(BaseDTO):
    """Dashboard cards computed over the unpaginated filter."""

    total_outstanding: Decimal
    service_fee_outstanding: Decimal
    government_fee_outstanding: Decimal
    external_charge_outstanding: Decimal
    pending_charges_count: int
    entities_count: int


class PaginationDTO(BaseDTO):
    """Pagination block."""

    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_more: bool


class OutstandingListDTO(BaseDTO):
    """Paginated rows."""

    data: list[OutstandingEntityDTO]
    pagination: PaginationDTO


class OutstandingEntitiesDTO(BaseDTO):
    """Full listing response: ``{cards, list}``."""

    cards: OutstandingCardsDTO
    list_: OutstandingListDTO = Field(alias="list")


__all__ = [
    "MAX_ENTITY_IDS",
    "OutstandingQueryDTO",
    "FamilyMoneyDTO",
    "EntityMoneyDTO",
    "EntityRefDTO",
    "TaskCountersDTO",
    "OutstandingEntityDTO",
    "OutstandingCardsDTO",
    "PaginationDTO",
    "OutstandingListDTO",
    "OutstandingEntitiesDTO",
]
