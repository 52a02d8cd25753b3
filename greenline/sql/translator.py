"""Translate parsed statements into calls on a fluent table-query builder.

The builder surface is the one exposed by supabase-py / postgrest-py
(`select`, `eq`, `neq`, `gt`, ..., `order`, `limit`, `range`, `insert`,
`update`, `delete`). Builders are treated as immutable-by-convention: every
call's return value replaces the previous builder.
"""

from __future__ import annotations

from typing import Any, Sequence

from greenline.sql.binding import ParameterBinder
from greenline.sql.errors import ParameterBindingError, UnsupportedPredicateError
from greenline.sql.statement import Condition, Operand, OrderTerm, ParsedStatement, Placeholder

_FILTER_METHODS = {
    "=": "eq",
    "<>": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "LIKE": "like",
    "ILIKE": "ilike",
    "IN": "in_",
}

# positional-binding indexes used by the legacy strategy
_WHERE_INDEX = 0
_SET_INDEX = 0
_UPDATE_WHERE_INDEX = 1


def build_select(backend: Any, statement: ParsedStatement, binder: ParameterBinder) -> Any:
    table = backend.table(statement.table)
    if statement.is_count:
        builder = table.select("*", count="exact")
    else:
        builder = table.select(*(statement.columns or ["*"]))
    builder = apply_conditions(builder, statement.conditions, binder, fixed_index=_WHERE_INDEX)
    builder = apply_order(builder, statement.order)
    return apply_window(builder, statement, binder)


def build_insert(backend: Any, statement: ParsedStatement, binder: ParameterBinder) -> Any:
    return backend.table(statement.table).insert(insert_records(statement, binder))


def build_update(backend: Any, statement: ParsedStatement, binder: ParameterBinder) -> Any:
    builder = backend.table(statement.table).update(update_values(statement, binder))
    return apply_conditions(builder, statement.conditions, binder, fixed_index=_UPDATE_WHERE_INDEX)


def build_delete(backend: Any, statement: ParsedStatement, binder: ParameterBinder) -> Any:
    builder = backend.table(statement.table).delete()
    return apply_conditions(builder, statement.conditions, binder, fixed_index=_WHERE_INDEX)


def insert_records(statement: ParsedStatement, binder: ParameterBinder) -> list[dict[str, Any]]:
    """Return one record per VALUES row, keyed by the declared columns in order.

    Positional binding counts parameters across rows, so row *r* column *c*
    takes ``params[r * len(columns) + c]``.
    """

    columns = statement.columns or []
    rows: Sequence[Sequence[Operand]] = statement.values or [
        [Placeholder(index + 1) for index in range(len(columns))]
    ]
    return [
        {
            column: binder.resolve(operand, fixed_index=row_number * len(columns) + index)
            for index, (column, operand) in enumerate(zip(columns, row))
        }
        for row_number, row in enumerate(rows)
    ]


def update_values(statement: ParsedStatement, binder: ParameterBinder) -> dict[str, Any]:
    return {
        column: binder.resolve(operand, fixed_index=_SET_INDEX)
        for column, operand in statement.assignments.items()
    }


def apply_conditions(
    builder: Any,
    conditions: Sequence[Condition],
    binder: ParameterBinder,
    *,
    fixed_index: int,
) -> Any:
    for condition in conditions:
        builder = _apply_condition(builder, condition, binder, fixed_index)
    return builder


def _apply_condition(builder: Any, condition: Condition, binder: ParameterBinder, fixed_index: int) -> Any:
    if condition.operator == "IS NULL":
        return builder.is_(condition.column, "null")
    if condition.operator == "IS NOT NULL":
        return builder.not_.is_(condition.column, "null")

    method = _FILTER_METHODS.get(condition.operator)
    if method is None:
        raise UnsupportedPredicateError(f"{condition.column} {condition.operator}")

    if isinstance(condition.operand, tuple):
        value: Any = [binder.resolve(operand, fixed_index=fixed_index) for operand in condition.operand]
    elif condition.operand is None:
        raise UnsupportedPredicateError(f"{condition.column} {condition.operator}")
    else:
        value = binder.resolve(condition.operand, fixed_index=fixed_index)
    return getattr(builder, method)(condition.column, value)


def apply_order(builder: Any, order: Sequence[OrderTerm]) -> Any:
    for term in order:
        builder = builder.order(term.column, desc=not term.ascending)
    return builder


def apply_window(builder: Any, statement: ParsedStatement, binder: ParameterBinder) -> Any:
    if statement.limit is None:
        return builder
    limit = _as_row_count(binder.resolve_exact(statement.limit), "LIMIT")
    if statement.offset is None or limit == 0:
        return builder.limit(limit)
    offset = _as_row_count(binder.resolve_exact(statement.offset), "OFFSET")
    return builder.range(offset, offset + limit - 1)


def _as_row_count(value: Any, clause: str) -> int:
    if isinstance(value, bool):
        raise ParameterBindingError(f"{clause} doit être un entier positif, reçu {value!r}")
    try:
        count = int(str(value), 10)
    except ValueError as exc:
        raise ParameterBindingError(f"{clause} doit être un entier positif, reçu {value!r}") from exc
    if count < 0:
        raise ParameterBindingError(f"{clause} doit être un entier positif, reçu {value!r}")
    return count
