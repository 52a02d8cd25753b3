"""Recursive-descent parser turning SQL text into a `ParsedStatement`.

Only the subset of SQL emitted by the GreenLine route handlers is accepted:

    SELECT * | <columns> | COUNT(*) [AS alias] FROM <table> [[AS] alias]
        [WHERE <cond> [AND <cond> ...]] [ORDER BY <col> [ASC|DESC], ...]
        [LIMIT <n>|$n [OFFSET <n>|$n]]
    INSERT INTO <table> (<columns>) [VALUES (<operands>), ...] [RETURNING ...]
    UPDATE <table> SET <col> = <operand>, ... [WHERE ...] [RETURNING ...]
    DELETE FROM <table> [WHERE ...] [RETURNING ...]

Conditions are `<col> <op> <operand>` with `=`, `<>`, `!=`, `<`, `<=`, `>`,
`>=`, `LIKE`, `ILIKE`, `IN (...)` and `IS [NOT] NULL`. Anything the table
backend cannot express (OR, parentheses, BETWEEN, JOIN, GROUP BY ...) is
rejected instead of being silently dropped.
"""

from __future__ import annotations

from greenline.sql import errors
from greenline.sql.errors import UnparsableStatementError, UnsupportedPredicateError
from greenline.sql.statement import (
    Condition,
    CurrentTimestamp,
    Literal,
    Operand,
    OrderTerm,
    ParsedStatement,
    Placeholder,
    StatementKind,
)
from greenline.sql.tokenizer import IDENT, NUMBER, OPERATOR, PLACEHOLDER, STRING, Token, tokenize

_CLAUSE_KEYWORDS = {"WHERE", "ORDER", "LIMIT", "OFFSET", "RETURNING", "GROUP", "HAVING"}
_RESERVED = _CLAUSE_KEYWORDS | {
    "AND",
    "AS",
    "CROSS",
    "FROM",
    "FULL",
    "INNER",
    "JOIN",
    "LEFT",
    "NOT",
    "ON",
    "OR",
    "OUTER",
    "RIGHT",
    "SET",
    "UNION",
    "VALUES",
}
_OPERATOR_ALIASES = {"!=": "<>"}
_FAILURE_MESSAGES = {
    StatementKind.SELECT: errors.SELECT_UNRECOGNISED,
    StatementKind.INSERT: errors.INSERT_UNRECOGNISED,
    StatementKind.UPDATE: errors.UPDATE_UNRECOGNISED,
    StatementKind.DELETE: errors.DELETE_UNRECOGNISED,
}


def leading_keyword(sql: str) -> str:
    """Return the upper-cased first whitespace-delimited token of *sql*."""

    parts = sql.strip().split(maxsplit=1)
    return parts[0].upper() if parts else ""


def parse_select(sql: str) -> ParsedStatement:
    return _Parser(sql, StatementKind.SELECT).select()


def parse_insert(sql: str) -> ParsedStatement:
    return _Parser(sql, StatementKind.INSERT).insert()


def parse_update(sql: str) -> ParsedStatement:
    return _Parser(sql, StatementKind.UPDATE).update()


def parse_delete(sql: str) -> ParsedStatement:
    return _Parser(sql, StatementKind.DELETE).delete()


class _Parser:
    def __init__(self, sql: str, kind: StatementKind) -> None:
        self.sql = sql
        self.kind = kind
        self.pos = 0
        self.table = ""
        self.alias: str | None = None
        self.tokens: list[Token] = []
        try:
            self.tokens = tokenize(sql)
        except ValueError as exc:
            raise self._error(str(exc)) from exc

    # -- statements -------------------------------------------------------

    def select(self) -> ParsedStatement:
        self._expect_keyword("SELECT")
        columns, count_alias = self._select_list()
        if not self._accept_keyword("FROM"):
            raise self._error("FROM attendu", message=self._select_failure())
        table_token = self._peek()
        if table_token is None or table_token.kind != IDENT or self._is_reserved(table_token):
            raise self._error("nom de table attendu après FROM", message=errors.SELECT_TABLE_MISSING)
        self.table = self._advance().value
        self._table_alias()

        statement = ParsedStatement(kind=self.kind, table=self.table, count_alias=count_alias)
        if columns is not None:
            statement.columns = [self._column(name) for name in columns]
        if self._accept_keyword("WHERE"):
            statement.conditions = self._conditions()
        if self._accept_keyword("ORDER"):
            self._expect_keyword("BY")
            statement.order = self._order_terms()
        if self._accept_keyword("LIMIT"):
            statement.limit = self._window_operand("LIMIT")
        if self._accept_keyword("OFFSET"):
            if statement.limit is None:
                raise self._error("OFFSET sans LIMIT")
            statement.offset = self._window_operand("OFFSET")
        self._finish()
        return statement

    def insert(self) -> ParsedStatement:
        self._expect_keyword("INSERT")
        self._expect_keyword("INTO")
        self.table = self._identifier("nom de table attendu après INSERT INTO")
        self._expect_punct("(")
        columns = self._identifier_list()
        self._expect_punct(")")

        statement = ParsedStatement(kind=self.kind, table=self.table, columns=columns)
        if self._accept_keyword("VALUES"):
            statement.values.append(self._values_row(len(columns)))
            while self._accept_punct(","):
                statement.values.append(self._values_row(len(columns)))
        statement.returning = self._returning()
        self._finish()
        return statement

    def update(self) -> ParsedStatement:
        self._expect_keyword("UPDATE")
        self.table = self._identifier("nom de table attendu après UPDATE")
        self._table_alias()
        self._expect_keyword("SET")

        statement = ParsedStatement(kind=self.kind, table=self.table)
        while True:
            column = self._column(self._identifier("colonne attendue dans SET"))
            self._expect_operator("=")
            operand = self._operand()
            if operand is None:
                raise self._error(f"expression non supportée pour la colonne {column}")
            statement.assignments[column] = operand
            if not self._accept_punct(","):
                break
        if self._accept_keyword("WHERE"):
            statement.conditions = self._conditions()
        statement.returning = self._returning()
        self._finish()
        return statement

    def delete(self) -> ParsedStatement:
        self._expect_keyword("DELETE")
        self._expect_keyword("FROM")
        self.table = self._identifier("nom de table attendu après DELETE FROM")
        self._table_alias()

        statement = ParsedStatement(kind=self.kind, table=self.table)
        if self._accept_keyword("WHERE"):
            statement.conditions = self._conditions()
        statement.returning = self._returning()
        self._finish()
        return statement

    # -- clauses ----------------------------------------------------------

    def _select_list(self) -> tuple[list[str] | None, str | None]:
        if self._accept_punct("*"):
            return None, None

        token = self._peek()
        following = self._peek(1)
        if token is not None and token.is_keyword("COUNT") and following is not None and following.is_punct("("):
            self._advance()
            self._advance()
            self._expect_punct("*")
            self._expect_punct(")")
            alias = "count"
            if self._accept_keyword("AS"):
                alias = self._identifier("alias attendu après AS")
            elif self._peek_identifier():
                alias = self._advance().value
            return None, alias

        columns = [self._identifier("colonne attendue après SELECT", message=self._select_failure())]
        while self._accept_punct(","):
            columns.append(self._identifier("colonne attendue", message=self._select_failure()))
        return columns, None

    def _table_alias(self) -> None:
        if self._accept_keyword("AS"):
            self.alias = self._identifier("alias attendu après AS")
        elif self._peek_identifier():
            self.alias = self._advance().value

    def _conditions(self) -> list[Condition]:
        conditions: list[Condition] = []
        while True:
            condition = self._condition()
            if condition is not None:
                conditions.append(condition)
            if not self._accept_keyword("AND"):
                break
        token = self._peek()
        if token is not None and (token.is_keyword("OR") or token.is_punct("(")):
            raise UnsupportedPredicateError(self._predicate_text(self.pos), sql=self.sql)
        return conditions

    def _condition(self) -> Condition | None:
        start = self.pos
        token = self._peek()
        if token is None:
            raise self._error("condition attendue après WHERE")
        if token.is_punct("(") or token.is_keyword("NOT", "EXISTS"):
            raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)

        left: Operand | None = None
        column: str | None = None
        if token.kind == IDENT and not token.quoted and token.value.upper() in {"TRUE", "FALSE", "NULL"}:
            left = self._operand()
        elif token.kind == IDENT:
            column = self._column(self._advance().value)
        else:
            left = self._operand()
            if left is None:
                raise self._error(f"condition invalide près de {token.value!r}")

        operator = self._condition_operator(start)
        if operator in {"IS NULL", "IS NOT NULL"}:
            if column is None:
                raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)
            return Condition(column=column, operator=operator)

        if operator == "IN":
            self._expect_punct("(")
            items = [self._required_operand(start)]
            while self._accept_punct(","):
                items.append(self._required_operand(start))
            self._expect_punct(")")
            if column is None:
                raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)
            return Condition(column=column, operator=operator, operand=tuple(items))

        right = self._required_operand(start)
        if column is not None:
            return Condition(column=column, operator=operator, operand=right)

        # literal on the left: only the `1=1` idiom is accepted
        if (
            operator == "="
            and isinstance(left, Literal)
            and isinstance(right, Literal)
            and left.value == right.value
        ):
            return None
        raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)

    def _condition_operator(self, start: int) -> str:
        token = self._peek()
        if token is None:
            raise self._error("opérateur attendu")
        if token.kind == OPERATOR:
            self._advance()
            return _OPERATOR_ALIASES.get(token.value, token.value)
        if token.is_keyword("LIKE", "ILIKE", "IN"):
            self._advance()
            return token.value.upper()
        if token.is_keyword("IS"):
            self._advance()
            negated = self._accept_keyword("NOT")
            if not self._accept_keyword("NULL"):
                raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)
            return "IS NOT NULL" if negated else "IS NULL"
        raise UnsupportedPredicateError(self._predicate_text(start), sql=self.sql)

    def _order_terms(self) -> list[OrderTerm]:
        terms: list[OrderTerm] = []
        while True:
            column = self._column(self._identifier("colonne attendue après ORDER BY"))
            ascending = True
            direction = self._peek()
            if direction is not None and direction.is_keyword("ASC", "DESC"):
                self._advance()
                ascending = direction.value.upper() == "ASC"
            terms.append(OrderTerm(column=column, ascending=ascending))
            if not self._accept_punct(","):
                return terms

    def _window_operand(self, clause: str) -> Operand:
        token = self._peek()
        if token is not None and token.kind == PLACEHOLDER:
            self._advance()
            return Placeholder(int(token.value))
        if token is not None and token.kind == NUMBER and token.value.isdigit():
            self._advance()
            return Literal(int(token.value, 10))
        raise self._error(f"entier attendu après {clause}")

    def _values_row(self, width: int) -> list[Operand]:
        self._expect_punct("(")
        row = [self._required_operand(None)]
        while self._accept_punct(","):
            row.append(self._required_operand(None))
        self._expect_punct(")")
        if len(row) != width:
            raise self._error(f"{len(row)} valeurs pour {width} colonnes")
        return row

    def _returning(self) -> list[str] | None:
        if not self._accept_keyword("RETURNING"):
            return None
        if self._accept_punct("*"):
            return ["*"]
        return [self._column(name) for name in self._identifier_list()]

    # -- operands ---------------------------------------------------------

    def _operand(self) -> Operand | None:
        token = self._peek()
        if token is None:
            return None
        if token.kind == PLACEHOLDER:
            self._advance()
            return Placeholder(int(token.value))
        if token.kind == STRING:
            self._advance()
            return Literal(token.value)
        if token.kind == NUMBER:
            self._advance()
            number = float(token.value) if "." in token.value else int(token.value, 10)
            return Literal(number)
        if token.is_keyword("TRUE", "FALSE"):
            self._advance()
            return Literal(token.value.upper() == "TRUE")
        if token.is_keyword("NULL"):
            self._advance()
            return Literal(None)
        if token.is_keyword("CURRENT_TIMESTAMP"):
            self._advance()
            return CurrentTimestamp()
        following = self._peek(1)
        if token.is_keyword("NOW") and following is not None and following.is_punct("("):
            self._advance()
            self._advance()
            self._expect_punct(")")
            return CurrentTimestamp()
        return None

    def _required_operand(self, predicate_start: int | None) -> Operand:
        operand = self._operand()
        if operand is not None:
            return operand
        if predicate_start is not None:
            raise UnsupportedPredicateError(self._predicate_text(predicate_start), sql=self.sql)
        token = self._peek()
        found = token.value if token is not None else "fin de requête"
        raise self._error(f"valeur attendue, trouvé {found!r}")

    # -- identifiers ------------------------------------------------------

    def _identifier(self, detail: str, *, message: str | None = None) -> str:
        token = self._peek()
        if token is None or token.kind != IDENT or self._is_reserved(token):
            raise self._error(detail, message=message)
        self._advance()
        return token.value

    def _identifier_list(self) -> list[str]:
        names = [self._identifier("colonne attendue")]
        while self._accept_punct(","):
            names.append(self._identifier("colonne attendue"))
        return names

    def _column(self, name: str) -> str:
        if "." not in name:
            return name
        qualifier, column = name.rsplit(".", 1)
        known = {self.table.lower()}
        if self.alias:
            known.add(self.alias.lower())
        if qualifier.lower() not in known:
            raise self._error(f"qualificatif inconnu {qualifier!r} pour la colonne {column!r}")
        return column

    def _peek_identifier(self) -> bool:
        token = self._peek()
        return token is not None and token.kind == IDENT and not self._is_reserved(token)

    @staticmethod
    def _is_reserved(token: Token) -> bool:
        return not token.quoted and token.value.upper() in _RESERVED

    # -- cursor -----------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _accept_keyword(self, word: str) -> bool:
        token = self._peek()
        if token is not None and token.is_keyword(word):
            self.pos += 1
            return True
        return False

    def _accept_punct(self, char: str) -> bool:
        token = self._peek()
        if token is not None and token.is_punct(char):
            self.pos += 1
            return True
        return False

    def _expect_keyword(self, word: str) -> None:
        if not self._accept_keyword(word):
            raise self._error(f"{word} attendu")

    def _expect_punct(self, char: str) -> None:
        if not self._accept_punct(char):
            raise self._error(f"{char!r} attendu")

    def _expect_operator(self, value: str) -> None:
        token = self._peek()
        if token is None or token.kind != OPERATOR or token.value != value:
            raise self._error(f"{value!r} attendu")
        self._advance()

    def _finish(self) -> None:
        self._accept_punct(";")
        token = self._peek()
        if token is not None:
            raise self._error(f"clause inattendue: {token.value}")

    # -- diagnostics ------------------------------------------------------

    def _predicate_text(self, start: int) -> str:
        parts: list[str] = []
        for token in self.tokens[start:]:
            if token.is_keyword("AND", *_CLAUSE_KEYWORDS) and parts:
                break
            parts.append(f"${token.value}" if token.kind == PLACEHOLDER else token.value)
        return " ".join(parts)

    def _select_failure(self) -> str:
        if any(token.is_keyword("FROM") for token in self.tokens):
            return errors.SELECT_UNRECOGNISED
        return errors.SELECT_TABLE_MISSING

    def _error(self, detail: str, *, message: str | None = None) -> UnparsableStatementError:
        if message is None:
            message = self._select_failure() if self.kind is StatementKind.SELECT else _FAILURE_MESSAGES[self.kind]
        return UnparsableStatementError(self.kind.value, message, detail=detail, sql=self.sql)
