"""Regular-expression tokenizer for the SQL subset understood by the shim."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

PLACEHOLDER = "placeholder"
STRING = "string"
NUMBER = "number"
IDENT = "ident"
OPERATOR = "operator"
PUNCT = "punct"

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<placeholder>\$(?P<index>\d+))
    |(?P<string>'(?:[^']|'')*')
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<quoted>"(?:[^"]|"")+")
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    |(?P<operator><>|!=|<=|>=|=|<|>)
    |(?P<punct>[(),;*])
    """,
    flags=re.VERBOSE,
)


@dataclass(slots=True, frozen=True)
class Token:
    kind: str
    value: str
    position: int
    quoted: bool = False

    def is_keyword(self, *words: str) -> bool:
        return self.kind == IDENT and not self.quoted and self.value.upper() in words

    def is_punct(self, char: str) -> bool:
        return self.kind == PUNCT and self.value == char


def tokenize(sql: str) -> list[Token]:
    """Split *sql* into tokens, raising `ValueError` on unknown characters."""

    return list(_iter_tokens(sql))


def _iter_tokens(sql: str) -> Iterator[Token]:
    position = 0
    length = len(sql)
    while position < length:
        match = _TOKEN_RE.match(sql, position)
        if match is None:
            raise ValueError(f"caractère inattendu {sql[position]!r} à la position {position}")
        kind = match.lastgroup
        text = match.group(0)
        if kind == "placeholder":
            yield Token(PLACEHOLDER, match.group("index"), position)
        elif kind == "string":
            yield Token(STRING, text[1:-1].replace("''", "'"), position)
        elif kind == "quoted":
            yield Token(IDENT, text[1:-1].replace('""', '"'), position, quoted=True)
        elif kind != "ws":
            yield Token(kind, text, position)
        position = match.end()
