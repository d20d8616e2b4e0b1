# src/opsdesk_api/infrastructure/observability/metrics.py
# Copyright (c) Opsdesk.
# SPDX-License-Identifier: MIT
"""Prometheus metrics utilities (registry-aware, hot-reload safe).

Every collector is exposed through an accessor function bound to the
**current** ``prometheus_client.REGISTRY``:

- Safe under hot reload and tests that swap the default registry.
- No duplicate-registration errors.
- Cache automatically resets when the active registry changes.

Collectors:
    * ``opsdesk_stats_deltas_applied_total{family,operation}``
    * ``opsdesk_stats_delta_apply_seconds{family}``
    * ``opsdesk_stats_consistency_alarms_total{family,reason}``
    * ``db_operation_duration_seconds{operation,model,outcome}``
    * ``db_errors_total{operation,model,reason}``

Example:
    get_stats_deltas_applied_total().labels(family="charges", operation="update").inc()
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final, TypeVar

import prometheus_client as prom
from prometheus_client import Counter, Histogram

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Common histogram buckets (seconds)
_BUCKETS: Final[tuple[float, ...]] = (
    0.001,
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
)

# Cache keyed by metric name within the currently-active registry.
_registry_id: int | None = None
_hist_cache: dict[str, Histogram] = {}
_counter_cache: dict[str, Counter] = {}
_lock = threading.RLock()


# ---------------------------------------------------------------------------
# Registry-handling primitives


def _active_registry_id() -> int:
    """Return an identifier for the current default registry."""
    return id(prom.REGISTRY)


def _ensure_registry() -> None:
    """Reset caches if the active registry changed."""
    global _registry_id
    with _lock:
        rid = _active_registry_id()
        if _registry_id is None or _registry_id != rid:
            _hist_cache.clear()
            _counter_cache.clear()
            _registry_id = rid


TCollector = TypeVar("TCollector", Counter, Histogram)


def _lookup_existing(
    name: str,
    kind: type[TCollector],
) -> TCollector | None:
    """Return a previously-registered collector of ``kind`` from the active registry.

    Args:
        name: Collector name.
        kind: Expected collector class.

    Returns:
        The existing collector if present and of the correct type.
    """
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, kind):
                return col
    return None


# ---------------------------------------------------------------------------
# Get-or-create helpers


def _get_or_create_hist(
    name: str,
    help_text: str,
    *,
    buckets: tuple[float, ...] = _BUCKETS,
    labelnames: tuple[str, ...] = (),
) -> Histogram:
    """Get or create a registry-bound ``Histogram`` with stable identity.

    Strategy:
    1. Return from module cache if present for the active registry.
    2. If registry already has a collector by this name, reuse it.
    3. Otherwise, register a new collector on the active registry.
    4. If concurrent registration triggers a duplication error, retry step 2.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        buckets: Histogram buckets in seconds.
        labelnames: Optional label names tuple.

    Returns:
        Histogram: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _hist_cache.get(name)
        if isinstance(cached, Histogram):
            return cached

        existing = _lookup_existing(name, Histogram)
        if existing is not None:
            _hist_cache[name] = existing
            return existing

        try:
            h = Histogram(
                name,
                help_text,
                labelnames or (),
                buckets=buckets,
                registry=prom.REGISTRY,
            )
            _hist_cache[name] = h
            return h
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Histogram)
                if again is not None:
                    _hist_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus histogram %s", name)
            raise


def _get_or_create_counter(
    name: str,
    help_text: str,
    *,
    labelnames: tuple[str, ...] = (),
) -> Counter:
    """Get or create a registry-bound ``Counter`` with stable identity.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        labelnames: Optional label names tuple.

    Returns:
        Counter: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _counter_cache.get(name)
        if isinstance(cached, Counter):
            return cached

        existing = _lookup_existing(name, Counter)
        if existing is not None:
            _counter_cache[name] = existing
            return existing

        try:
            c = Counter(
                name,
                help_text,
                labelnames or (),
                registry=prom.REGISTRY,
            )
            _counter_cache[name] = c
            return c
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Counter)
                if again is not None:
                    _counter_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus counter %s", name)
            raise


# ---------------------------------------------------------------------------
# Summary-row (delta protocol) metrics


def get_stats_deltas_applied_total() -> Counter:
    """Return counter for applied summary-row deltas.

    Labels:
        family: ``charges`` or ``tasks``.
        operation: Lifecycle operation (``create``, ``update``, ``rebuild`` ...).
    """
    return _get_or_create_counter(
        name="opsdesk_stats_deltas_applied_total",
        help_text="Total summary-row deltas applied, by family and lifecycle operation.",
        labelnames=("family", "operation"),
    )


def get_stats_delta_apply_seconds() -> Histogram:
    """Return histogram for the latency of one upsert-with-increment statement.

    Labels:
        family: ``charges`` or ``tasks``.
    """
    return _get_or_create_hist(
        name="opsdesk_stats_delta_apply_seconds",
        help_text="Latency (seconds) of summary-row upsert-with-increment statements.",
        labelnames=("family",),
    )


def get_stats_consistency_alarms_total() -> Counter:
    """Return counter for detected summary-row inconsistencies.

    Labels:
        family: ``charges`` or ``tasks``.
        reason: Short reason (``negative_paid``, ``drift``).
    """
    return _get_or_create_counter(
        name="opsdesk_stats_consistency_alarms_total",
        help_text="Total summary-row consistency alarms, by family and reason.",
        labelnames=("family", "reason"),
    )


# ---------------------------------------------------------------------------
# Database metrics


def get_db_operation_duration_seconds() -> Histogram:
    """Return histogram for DB operation latency.

    Labels:
        operation: Logical operation name (e.g. ``list_outstanding``).
        model: Logical model/table name (e.g. ``reconcile_stats_current``).
        outcome: ``success`` or ``error``.
    """
    return _get_or_create_hist(
        name="db_operation_duration_seconds",
        help_text="Latency (seconds) of database operations.",
        labelnames=("operation", "model", "outcome"),
    )


def get_db_errors_total() -> Counter:
    """Return counter for DB errors.

    Labels:
        operation: Logical operation name.
        model: Logical model/table name.
        reason: Error class or short reason.
    """
    return _get_or_create_counter(
        name="db_errors_total",
        help_text="Total database errors by operation/model.",
        labelnames=("operation", "model", "reason"),
    )


__all__ = [
    "get_stats_deltas_applied_total",
    "get_stats_delta_apply_seconds",
    "get_stats_consistency_alarms_total",
    "get_db_operation_duration_seconds",
    "get_db_errors_total",
]
