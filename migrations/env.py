# migrations/env.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Alembic Environment (migrations/env.py)

Purpose:
    Configure Alembic for the Opsdesk models (entities, tasks, task charges
    and the two summary tables) for offline and online (async) runs.

Design:
    - Loads env vars from .env + .env.<ENVIRONMENT> (without overriding exported vars).
    - Loads the database URL from environment variables or alembic.ini.
    - Refuses to run if ENVIRONMENT is missing.
    - Enforces an allowlist of DB names per ENVIRONMENT.
    - Uses the project Declarative Base metadata for autogenerate.
    - Emits masked connection information to the log (no credentials).

Environment variables:
    ENVIRONMENT                 Required. One of: "test", "ci", "development", "docker".
    DATABASE_URL                Primary database URL (preferred).
    SQLALCHEMY_DATABASE_URI     Fallback database URL.
    DB_SCHEMA                   Schema for all tables (default "public").
    ECHO_SQL                    If "1", enable SQL echo in online runs.
    ALEMBIC_SHOW_URL            If "1", log masked URL during runs.

Usage:
    ENVIRONMENT=test alembic upgrade head --sql
    ENVIRONMENT=test alembic -x show_url=1 upgrade head
"""

from __future__ import annotations

import asyncio
import logging
import logging.config
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse, urlunparse

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from opsdesk_api.infrastructure.database.models import ops as _ops_models  # noqa: F401
from opsdesk_api.infrastructure.database.models.base import metadata as BaseMetadata

config = context.config

if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_VERSION_TABLE = "alembic_version"
_VERSION_TABLE_SCHEMA = "public"

_ALLOWED_DATABASES: dict[str, set[str]] = {
    "test": {"opsdesk_test"},
    "ci": {"opsdesk_test"},
    "development": {"opsdesk"},
    "docker": {"opsdesk"},
}


def _load_env_files() -> None:
    """Load .env and .env.<ENVIRONMENT> from repo root (exported vars win)."""
    root = Path(__file__).resolve().parents[1]

    base = root / ".env"
    if base.exists():
        load_dotenv(base, override=False)

    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if env:
        env_file = root / f".env.{env}"
        if env_file.exists():
            load_dotenv(env_file, override=False)


_load_env_files()


def _xargs() -> Mapping[str, str]:
    """Return Alembic -x key=value arguments as a mapping."""
    return dict(getattr(config, "x", {}) or {})


def _mask_url(url: str) -> str:
    """Return ``url`` with the password replaced, for logging."""
    parts = urlparse(url)
    user = parts.username or ""
    host = parts.hostname or ""
    port = f":{parts.port}" if parts.port else ""
    auth = f"{user}:****@" if user else ""
    return urlunparse((parts.scheme, f"{auth}{host}{port}", parts.path or "", "", "", ""))


def _get_db_url() -> str:
    """Resolve the database URL (DATABASE_URL, SQLALCHEMY_DATABASE_URI, alembic.ini)."""
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if env_url:
        return env_url

    ini_url = config.get_main_option("sqlalchemy.url")
    if ini_url:
        return ini_url

    raise RuntimeError(
        "Database URL not configured (DATABASE_URL/SQLALCHEMY_DATABASE_URI/sqlalchemy.url)."
    )


def _require_environment() -> str:
    """Require ENVIRONMENT to be set to prevent accidental migrations."""
    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if not env:
        raise RuntimeError(
            "ENVIRONMENT is required for migrations (e.g., ENVIRONMENT=test). "
            "Refusing to run without an explicit environment."
        )
    return env


def _assert_safe_db(url: str, *, env: str) -> None:
    """Refuse to run migrations against unexpected DBs for the given ENVIRONMENT."""
    dbname = (urlparse(url).path or "").lstrip("/")

    allowed = _ALLOWED_DATABASES.get(env)
    if allowed is None:
        raise RuntimeError(
            f"Unsupported ENVIRONMENT={env!r} for migrations. "
            f"Supported: {sorted(_ALLOWED_DATABASES)}"
        )

    if dbname not in allowed:
        raise RuntimeError(
            "Refusing to run migrations against an unexpected database.\n"
            f"ENVIRONMENT={env!r}\n"
            f"database={dbname!r}\n"
            f"allowed={sorted(allowed)}\n"
            f"url={_mask_url(url)}"
        )


def _maybe_log_url(url: str) -> None:
    if _xargs().get("show_url") == "1" or os.getenv("ALEMBIC_SHOW_URL") == "1":
        logger.info("Using DATABASE_URL (masked): %s", _mask_url(url))


target_metadata = BaseMetadata


def _context_kwargs() -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_schemas": True,
        "version_table": _VERSION_TABLE,
        "version_table_schema": _VERSION_TABLE_SCHEMA,
    }


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL script output)."""
    env = _require_environment()
    url = _get_db_url()
    _assert_safe_db(url, env=env)
    _maybe_log_url(url)

    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_kwargs(),
    )

    with context.begin_transaction():
        context.run_migrations()


def _configure_and_run(connection: Connection) -> None:
    context.configure(connection=connection, **_context_kwargs())
    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_async() -> None:
    """Run migrations in 'online' mode using an async engine."""
    env = _require_environment()
    url = _get_db_url()
    _assert_safe_db(url, env=env)
    _maybe_log_url(url)

    connectable: AsyncEngine = create_async_engine(
        url,
        echo=os.getenv("ECHO_SQL") == "1",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_configure_and_run)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point used by Alembic for online migrations."""
    asyncio.run(_run_migrations_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
