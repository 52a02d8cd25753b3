"""In-memory table backend exposing the supabase-py fluent builder surface.

The backend keeps each table as a list of row dictionaries and records every
builder call in `calls`, so tests can assert on the exact query the shim
issued. Use it for local runs (``backend.provider: memory``) and as the
substitutable fake in the test suite.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

_Predicate = Callable[[dict[str, Any]], bool]


@dataclass(slots=True)
class InMemoryResponse:
    data: list[dict[str, Any]]
    count: int | None = None


@dataclass(slots=True)
class InMemoryTableBackend:
    """Mapping-based table store that satisfies the `TableBackend` protocol."""

    tables: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)

    def table(self, name: str) -> InMemoryQueryBuilder:
        self.calls.append(("table", name))
        return InMemoryQueryBuilder(self, name)

    def prime(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Replace the contents of *table* with copies of *rows*."""

        self.tables[table] = [dict(row) for row in rows]

    def rows(self, table: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self.tables.get(table, [])]

    def fail_next(self, table: str, error: Exception) -> None:
        """Make the next executed query on *table* raise *error*."""

        self.failures[table] = error

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]


class InMemoryQueryBuilder:
    """Chainable request builder; every method returns the builder itself."""

    def __init__(self, backend: InMemoryTableBackend, table: str) -> None:
        self._backend = backend
        self._table = table
        self._operation = "select"
        self._columns: list[str] | None = None
        self._count: str | None = None
        self._payload: Any = None
        self._filters: list[_Predicate] = []
        self._order: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._range: tuple[int, int] | None = None
        self._negate_next = False

    # -- operations -------------------------------------------------------

    def select(self, *columns: str, count: str | None = None) -> InMemoryQueryBuilder:
        self._record("select", *columns, count=count)
        self._operation = "select"
        selected = [column for column in columns if column != "*"]
        self._columns = selected or None
        self._count = count
        return self

    def insert(self, records: list[dict[str, Any]] | dict[str, Any]) -> InMemoryQueryBuilder:
        payload = [records] if isinstance(records, dict) else list(records)
        self._record("insert", payload)
        self._operation = "insert"
        self._payload = payload
        return self

    def update(self, values: dict[str, Any]) -> InMemoryQueryBuilder:
        self._record("update", dict(values))
        self._operation = "update"
        self._payload = dict(values)
        return self

    def delete(self) -> InMemoryQueryBuilder:
        self._record("delete")
        self._operation = "delete"
        return self

    # -- filters ----------------------------------------------------------

    @property
    def not_(self) -> InMemoryQueryBuilder:
        self._record("not")
        self._negate_next = True
        return self

    def eq(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("eq", column, value, lambda current: current == value)

    def neq(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("neq", column, value, lambda current: current != value)

    def gt(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("gt", column, value, lambda current: _compare(current, value) > 0)

    def gte(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("gte", column, value, lambda current: _compare(current, value) >= 0)

    def lt(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("lt", column, value, lambda current: _compare(current, value) == -1)

    def lte(self, column: str, value: Any) -> InMemoryQueryBuilder:
        return self._filter("lte", column, value, lambda current: _compare(current, value) in (-1, 0))

    def like(self, column: str, pattern: str) -> InMemoryQueryBuilder:
        regex = _like_regex(pattern, flags=0)
        return self._filter("like", column, pattern, lambda current: isinstance(current, str) and bool(regex.fullmatch(current)))

    def ilike(self, column: str, pattern: str) -> InMemoryQueryBuilder:
        regex = _like_regex(pattern, flags=re.IGNORECASE)
        return self._filter("ilike", column, pattern, lambda current: isinstance(current, str) and bool(regex.fullmatch(current)))

    def in_(self, column: str, values: list[Any]) -> InMemoryQueryBuilder:
        options = list(values)
        return self._filter("in_", column, options, lambda current: current in options)

    def is_(self, column: str, value: Any) -> InMemoryQueryBuilder:
        expected = None if value in (None, "null") else value
        return self._filter("is_", column, value, lambda current: current is expected)

    # -- modifiers --------------------------------------------------------

    def order(self, column: str, *, desc: bool = False) -> InMemoryQueryBuilder:
        self._record("order", column, desc)
        self._order.append((column, desc))
        return self

    def limit(self, size: int) -> InMemoryQueryBuilder:
        self._record("limit", size)
        self._limit = size
        return self

    def range(self, start: int, end: int) -> InMemoryQueryBuilder:
        self._record("range", start, end)
        self._range = (start, end)
        return self

    # -- execution --------------------------------------------------------

    async def execute(self) -> InMemoryResponse:
        self._record("execute")
        failure = self._backend.failures.pop(self._table, None)
        if failure is not None:
            raise failure

        rows = self._backend.tables.setdefault(self._table, [])
        if self._operation == "insert":
            inserted = [dict(record) for record in self._payload]
            rows.extend(inserted)
            return InMemoryResponse(data=[dict(record) for record in inserted])

        matched = [row for row in rows if all(predicate(row) for predicate in self._filters)]
        if self._operation == "update":
            for row in matched:
                row.update(self._payload)
            return InMemoryResponse(data=[dict(row) for row in matched])
        if self._operation == "delete":
            removed = {id(row) for row in matched}
            self._backend.tables[self._table] = [row for row in rows if id(row) not in removed]
            return InMemoryResponse(data=[dict(row) for row in matched])

        count = len(matched) if self._count else None
        for column, desc in reversed(self._order):
            matched.sort(key=lambda row: _sort_key(row.get(column)), reverse=desc)
        if self._range is not None:
            start, end = self._range
            matched = matched[start : end + 1]
        elif self._limit is not None:
            matched = matched[: self._limit]
        if self._columns is not None:
            data = [{column: row.get(column) for column in self._columns} for row in matched]
        else:
            data = [dict(row) for row in matched]
        return InMemoryResponse(data=data, count=count)

    # -- helpers ----------------------------------------------------------

    def _filter(self, name: str, column: str, value: Any, test: Callable[[Any], bool]) -> InMemoryQueryBuilder:
        negate = self._negate_next
        self._negate_next = False
        self._record(name, column, value)

        def predicate(row: dict[str, Any]) -> bool:
            outcome = test(row.get(column))
            return not outcome if negate else outcome

        self._filters.append(predicate)
        return self

    def _record(self, *call: Any, **options: Any) -> None:
        options = {key: value for key, value in options.items() if value is not None}
        if options:
            call = (*call, options)
        self._backend.calls.append(call)


def _compare(left: Any, right: Any) -> int:
    """Three-way compare returning -2 when the values are not comparable."""

    if left is None or right is None:
        return -2
    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError:
        return -2
    return 0


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is None, value if value is not None else 0)


def _like_regex(pattern: str, *, flags: int) -> re.Pattern[str]:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), flags | re.DOTALL)
