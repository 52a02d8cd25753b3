"""Ephemeral representation of a parsed SQL statement."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class StatementKind(str, Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(slots=True, frozen=True)
class Placeholder:
    """A `$n` reference; *index* is one-based as written in the SQL text."""

    index: int


@dataclass(slots=True, frozen=True)
class Literal:
    value: Any


@dataclass(slots=True, frozen=True)
class CurrentTimestamp:
    """`CURRENT_TIMESTAMP` or `NOW()`, resolved when the statement is bound."""


Operand = Union[Placeholder, Literal, CurrentTimestamp]


@dataclass(slots=True, frozen=True)
class Condition:
    """A single `column operator operand` term of a WHERE clause.

    `operand` is a tuple of operands for `IN`, and `None` for `IS [NOT] NULL`.
    """

    column: str
    operator: str
    operand: Operand | tuple[Operand, ...] | None = None


@dataclass(slots=True, frozen=True)
class OrderTerm:
    column: str
    ascending: bool = True


@dataclass(slots=True)
class ParsedStatement:
    kind: StatementKind
    table: str
    columns: list[str] | None = None
    count_alias: str | None = None
    conditions: list[Condition] = field(default_factory=list)
    order: list[OrderTerm] = field(default_factory=list)
    limit: Operand | None = None
    offset: Operand | None = None
    assignments: dict[str, Operand] = field(default_factory=dict)
    values: list[list[Operand]] = field(default_factory=list)
    returning: list[str] | None = None

    @property
    def is_count(self) -> bool:
        return self.count_alias is not None

    @property
    def where_columns(self) -> list[str]:
        return [condition.column for condition in self.conditions]
