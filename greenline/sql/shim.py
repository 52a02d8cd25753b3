"""Relational-driver facade over a fluent table backend.

Route handlers call ``await shim.query(sql, params)`` exactly as they would call
a ``pg`` pool and receive a `QueryResult`. The shim dispatches on the leading
keyword, parses the statement, binds the parameters, builds the backend query
and normalises the response. One call issues exactly one backend round trip.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Protocol, Sequence

from greenline.core.observability import QueryObservationSink
from greenline.sql.binding import ParameterBinder, ParameterBinding
from greenline.sql.errors import BackendError, QueryError, UnsupportedStatementError
from greenline.sql.parser import leading_keyword, parse_delete, parse_insert, parse_select, parse_update
from greenline.sql.results import QueryResult, normalize, unwrap_response
from greenline.sql.statement import ParsedStatement
from greenline.sql.translator import build_delete, build_insert, build_select, build_update

LOGGER = logging.getLogger(__name__)

DEFAULT_PROBE_TABLE = "conversations"


class TableBackend(Protocol):
    """Abstracts a hosted table API with a fluent query builder."""

    def table(self, name: str) -> Any:  # pragma: no cover - interface
        """Return a request builder for *name*."""


_Parser = Callable[[str], ParsedStatement]
_Builder = Callable[[Any, ParsedStatement, ParameterBinder], Any]

_HANDLERS: dict[str, tuple[_Parser, _Builder]] = {
    "SELECT": (parse_select, build_select),
    "INSERT": (parse_insert, build_insert),
    "UPDATE": (parse_update, build_update),
    "DELETE": (parse_delete, build_delete),
}


@dataclass(slots=True)
class SQLShim:
    """Executes SQL-like statements against a `TableBackend`."""

    backend: TableBackend
    binding: ParameterBinding = ParameterBinding.PLACEHOLDER
    logger: QueryObservationSink | None = None
    probe_table: str = DEFAULT_PROBE_TABLE
    log_channel: str = "queries"

    async def query(self, text: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Run *text* with positional *params* and return the normalised result."""

        values = list(params) if params is not None else []
        LOGGER.debug("Requête SQL: %s params=%r", text, values)
        await self._log_event("query_received", {"query": text, "params": values})

        keyword = leading_keyword(text)
        statement: ParsedStatement | None = None
        try:
            handler = _HANDLERS.get(keyword)
            if handler is None:
                raise UnsupportedStatementError(keyword)
            parse, build = handler
            statement = parse(text)
            binder = ParameterBinder(values, mode=self.binding)
            response = await self._execute(lambda: build(self.backend, statement, binder))
            result = normalize(statement, response)
        except QueryError as exc:
            exc.attach(text, values)
            LOGGER.error(
                "Erreur lors de l'exécution de la requête: %s (kind=%s query=%r params=%r)",
                exc.message,
                keyword,
                text,
                values,
            )
            await self._log_event(
                "query_failed",
                {
                    "kind": keyword,
                    "table": statement.table if statement is not None else None,
                    "error_type": type(exc).__name__,
                    "error": exc.message,
                    "detail": exc.detail,
                    "query": text,
                    "params": values,
                },
            )
            raise

        await self._log_event(
            "query_completed",
            {
                "kind": keyword,
                "table": statement.table,
                "row_count": result.row_count if result.row_count is not None else len(result.rows or []),
            },
        )
        return result

    async def check_connection(self) -> bool:
        """Probe the backend with a one-row select on the configured table."""

        LOGGER.info("Vérification de la connexion au backend (table '%s')", self.probe_table)
        try:
            response = await self._execute(lambda: self.backend.table(self.probe_table).select("*").limit(1))
            unwrap_response(response)
        except BackendError as exc:
            LOGGER.error("Erreur de connexion au backend: %s", exc.message)
            raise
        LOGGER.info("Connecté au backend avec succès")
        return True

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[SQLShim]:
        """Pool-style checkout; the backend handle is shared so this only logs."""

        LOGGER.debug("Connexion à la base de données établie")
        try:
            yield self
        finally:
            LOGGER.debug("Connexion libérée")

    async def close(self) -> None:
        closer = getattr(self.backend, "aclose", None) or getattr(self.backend, "close", None)
        if closer is not None:
            outcome = closer()
            if inspect.isawaitable(outcome):
                await outcome
        LOGGER.info("Connexion à la base de données fermée")

    async def _execute(self, build_query: Callable[[], Any]) -> Any:
        """Build the backend request and run it.

        Building touches the backend client too, so failures from either step
        surface as `BackendError`; `QueryError`s pass through unchanged.
        """

        try:
            response = build_query().execute()
            if inspect.isawaitable(response):
                response = await response
        except QueryError:
            raise
        except Exception as exc:
            raise BackendError(exc) from exc
        return response

    async def _log_event(self, event: str, payload: dict[str, Any]) -> None:
        # sinks write to disk; keep that off the event loop
        if self.logger is None:
            return
        try:
            await asyncio.to_thread(self.logger.log_event, self.log_channel, event, payload)
        except Exception:  # pragma: no cover - logging must not break queries
            LOGGER.exception("Failed to record query event %s", event)
