"""Factory helpers for constructing the shim and its collaborators from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from greenline.core.config import Settings
from greenline.core.observability import JSONLQueryLogger, QueryObservationSink
from greenline.integrations.in_memory_backend import InMemoryTableBackend
from greenline.integrations.supabase_backend import SupabaseClientFactory
from greenline.sql.shim import SQLShim, TableBackend

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ShimDependencies:
    """Long-lived objects shared by every request."""

    shim: SQLShim
    backend: TableBackend
    query_logger: QueryObservationSink | None = None


async def build_dependencies(settings: Settings, *, backend: Any | None = None) -> ShimDependencies:
    """Create dependency instances based on *settings*.

    The backend client is created once here; pass *backend* to inject an
    already constructed one.
    """

    if backend is None:
        backend = await _build_backend(settings)

    query_logger = JSONLQueryLogger(base_dir=_resolve_query_logs_dir(settings))
    shim = SQLShim(
        backend=backend,
        binding=settings.shim.parameter_binding,
        logger=query_logger,
        probe_table=settings.backend.probe_table,
    )
    return ShimDependencies(shim=shim, backend=backend, query_logger=query_logger)


async def _build_backend(settings: Settings) -> Any:
    if settings.backend.provider == "memory":
        LOGGER.info("Using in-memory table backend")
        return InMemoryTableBackend()
    return await SupabaseClientFactory(settings.backend).create()


def _resolve_query_logs_dir(settings: Settings) -> Path:
    base = (
        settings.paths.query_logs_dir
        if settings.paths and settings.paths.query_logs_dir
        else "logs/query"
    )
    path = Path(base).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path
