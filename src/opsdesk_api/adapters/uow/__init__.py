# src/opsdesk_api/adapters/uow/__init__.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Unit of Work implementations (Adapters Layer).

Application code depends only on `opsdesk_api.application.uow.UnitOfWork`.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork, default_repo_factories

__all__ = ["SqlAlchemyUnitOfWork", "default_repo_factories"]
