# src/opsdesk_api/tasks/cli.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Opsdesk CLI: operational commands for the summary tables.

Commands:
    stats verify ENTITY_ID     Compare summary rows with a full re-scan.
                               Exit code 1 when any counter drifted.
    stats rebuild ENTITY_ID    Apply correction deltas for any drift.
    outstanding list           Print the outstanding-entities listing.

Environment:
    DATABASE_URL               Async SQLAlchemy URL (postgresql+asyncpg://...).
    LOG_LEVEL                  Root log level (default INFO).
    OUTSTANDING_DEFAULT_PAGE_SIZE / OUTSTANDING_MAX_PAGE_SIZE
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

import typer
from pydantic import ValidationError

from opsdesk_api.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
from opsdesk_api.application.schemas.dto.outstanding import OutstandingQueryDTO
from opsdesk_api.application.uow import UnitOfWork
from opsdesk_api.application.use_cases.reconcile.list_outstanding_entities import (
    ListOutstandingEntitiesUseCase,
)
from opsdesk_api.application.use_cases.reconcile.rebuild_entity_stats import (
    RebuildEntityStatsUseCase,
)
from opsdesk_api.application.use_cases.reconcile.verify_entity_stats import (
    VerifyEntityStatsUseCase,
)
from opsdesk_api.config.settings import Settings, get_settings
from opsdesk_api.infrastructure.database.session import (
    dispose_engine,
    get_sessionmaker,
    init_engine_and_sessionmaker,
)
from opsdesk_api.infrastructure.logging.logger import configure_root_logging, get_json_logger

configure_root_logging()
log = get_json_logger(__name__)

T = TypeVar("T")

app = typer.Typer(add_completion=False, no_args_is_help=True)
stats_app = typer.Typer(no_args_is_help=True)
outstanding_app = typer.Typer(no_args_is_help=True)
app.add_typer(stats_app, name="stats")
app.add_typer(outstanding_app, name="outstanding")


def _build_uow(settings: Settings) -> UnitOfWork:
    """Return a SQLAlchemy UnitOfWork bound to the configured database."""
    init_engine_and_sessionmaker(settings)
    return SqlAlchemyUnitOfWork(session_factory=get_sessionmaker())


def _run(work: Callable[[], Awaitable[T]]) -> T:
    """Run ``work`` on a fresh event loop and dispose the engine afterwards."""

    async def _main() -> T:
        try:
            return await work()
        finally:
            await dispose_engine()

    return asyncio.run(_main())


@stats_app.command("verify")
def stats_verify(
    entity_id: UUID = typer.Argument(..., help="Entity UUID."),  # noqa: B008
) -> None:
    """Report summary counters that differ from a full re-scan."""
    uow = _build_uow(get_settings())
    report = _run(lambda: VerifyEntityStatsUseCase(uow).execute(entity_id))

    typer.echo(report.model_dump_json(indent=2))
    if not report.consistent:
        log.warning(
            "stats.verify.drift",
            extra={
                "extra": {
                    "entity_id": str(entity_id),
                    "charges": len(report.charges),
                    "tasks": len(report.tasks),
                },
            },
        )
        raise typer.Exit(code=1)


@stats_app.command("rebuild")
def stats_rebuild(
    entity_id: UUID = typer.Argument(..., help="Entity UUID."),  # noqa: B008
) -> None:
    """Correct drifted summary counters through the delta applier."""
    uow = _build_uow(get_settings())
    report = _run(lambda: RebuildEntityStatsUseCase(uow).execute(entity_id))
    typer.echo(report.model_dump_json(indent=2))


@outstanding_app.command("list")
def outstanding_list(
    page: int = typer.Option(1, help="1-based page number."),  # noqa: B008
    page_size: int | None = typer.Option(None, help="Rows per page."),  # noqa: B008
    charge_type: str | None = typer.Option(  # noqa: B008
        None, help="SERVICE_FEE, GOVERNMENT_FEE or EXTERNAL_CHARGE."
    ),
    entity_id: list[UUID] | None = typer.Option(  # noqa: B008
        None, "--entity-id", help="Restrict to these entities (repeatable, max 10)."
    ),
    sort_by: str = typer.Option("client_total_outstanding", help="Sort key."),  # noqa: B008
    sort_order: str = typer.Option("desc", help="asc or desc."),  # noqa: B008
) -> None:
    """Print entities with a positive client outstanding balance as JSON."""
    settings = get_settings()
    try:
        query = OutstandingQueryDTO(
            page=page,
            page_size=page_size,
            charge_type=charge_type,
            entity_ids=list(entity_id or []),
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    use_case = ListOutstandingEntitiesUseCase(
        _build_uow(settings),
        default_page_size=settings.outstanding_default_page_size,
        max_page_size=settings.outstanding_max_page_size,
    )
    result = _run(lambda: use_case.execute(query))
    typer.echo(result.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    app()
