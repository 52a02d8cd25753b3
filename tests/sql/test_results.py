"""Tests for normalising backend responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from greenline.sql.errors import BackendError
from greenline.sql.parser import parse_delete, parse_insert, parse_select, parse_update
from greenline.sql.results import QueryResult, normalize, unwrap_response


@dataclass
class _Response:
    data: Any
    count: int | None = None


def test_unwrap_accepts_objects_and_mappings() -> None:
    assert unwrap_response(_Response(data=[{"id": 1}], count=4)) == ([{"id": 1}], 4)
    assert unwrap_response({"data": None, "error": None}) == ([], None)
    assert unwrap_response(_Response(data={"id": 2})) == ([{"id": 2}], None)


def test_unwrap_raises_on_reported_error() -> None:
    with pytest.raises(BackendError, match="permission denied"):
        unwrap_response({"data": None, "error": {"message": "permission denied", "code": "42501"}})


def test_select_rows_are_passed_through() -> None:
    rows = [{"id": 1, "status": "pending"}]

    result = normalize(parse_select("SELECT * FROM orders"), _Response(data=rows))

    assert result.rows == rows
    assert result.rows[0] is rows[0]
    assert result.to_dict() == {"rows": rows}


def test_count_uses_backend_count_then_row_length() -> None:
    statement = parse_select("SELECT COUNT(*) AS total FROM orders")

    assert normalize(statement, _Response(data=[], count=12)).rows == [{"total": 12}]
    assert normalize(statement, _Response(data=[{}, {}])).rows == [{"total": 2}]


def test_insert_and_update_report_row_count() -> None:
    inserted = normalize(parse_insert("INSERT INTO t (a) VALUES ($1)"), _Response(data=[{"id": 1, "a": "x"}]))
    updated = normalize(parse_update("UPDATE t SET a = $1 WHERE id = $2"), _Response(data=None))

    assert inserted.to_dict() == {"rows": [{"id": 1, "a": "x"}], "rowCount": 1}
    assert updated == QueryResult(rows=[], row_count=0)


def test_returning_columns_project_rows() -> None:
    statement = parse_update("UPDATE t SET a = $1 WHERE id = $2 RETURNING id")

    result = normalize(statement, _Response(data=[{"id": 1, "a": "x"}]))

    assert result.rows == [{"id": 1}]


def test_delete_reports_count_only_unless_returning() -> None:
    plain = normalize(parse_delete("DELETE FROM t WHERE id = $1"), _Response(data=[{"id": 1}]))
    returning = normalize(parse_delete("DELETE FROM t WHERE id = $1 RETURNING *"), _Response(data=[{"id": 1}]))

    assert plain.to_dict() == {"rowCount": 1}
    assert returning.to_dict() == {"rows": [{"id": 1}], "rowCount": 1}
