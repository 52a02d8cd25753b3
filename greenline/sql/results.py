"""Normalise table-backend responses into relational-driver results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from greenline.sql.errors import BackendError
from greenline.sql.statement import ParsedStatement, StatementKind


@dataclass(slots=True, frozen=True)
class QueryResult:
    """Result of one shim call, shaped like a `pg` driver result.

    `rows` is ``None`` for a DELETE without RETURNING; `row_count` is ``None``
    for SELECT.
    """

    rows: list[dict[str, Any]] | None = None
    row_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.rows is not None:
            payload["rows"] = self.rows
        if self.row_count is not None:
            payload["rowCount"] = self.row_count
        return payload


def unwrap_response(response: Any) -> tuple[list[dict[str, Any]], int | None]:
    """Return ``(records, count)`` from a backend response.

    Accepts objects exposing ``data``/``count`` (supabase-py ``APIResponse``)
    and ``{"data": ..., "error": ...}`` mappings. A reported error raises
    `BackendError`.
    """

    if isinstance(response, Mapping):
        error = response.get("error")
        data = response.get("data")
        count = response.get("count")
    else:
        error = getattr(response, "error", None)
        data = getattr(response, "data", None)
        count = getattr(response, "count", None)

    if error:
        raise BackendError(error)

    if data is None:
        records: list[dict[str, Any]] = []
    elif isinstance(data, Mapping):
        records = [dict(data)]
    else:
        records = list(data)
    return records, count


def normalize(statement: ParsedStatement, response: Any) -> QueryResult:
    records, count = unwrap_response(response)

    if statement.kind is StatementKind.SELECT:
        if statement.count_alias is not None:
            total = count if count is not None else len(records)
            return QueryResult(rows=[{statement.count_alias: total}])
        return QueryResult(rows=records)

    records = _project(records, statement.returning)
    if statement.kind is StatementKind.DELETE:
        return QueryResult(
            rows=records if statement.returning is not None else None,
            row_count=len(records),
        )
    return QueryResult(rows=records, row_count=len(records))


def _project(records: list[dict[str, Any]], returning: list[str] | None) -> list[dict[str, Any]]:
    if not returning or returning == ["*"]:
        return records
    return [{column: record.get(column) for column in returning} for record in records]
