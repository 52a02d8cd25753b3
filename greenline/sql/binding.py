"""Resolution of statement operands against the caller's parameter list.

Two strategies are available:

- ``placeholder`` (default): each ``$n`` resolves to the n-th parameter, so
  ``UPDATE t SET a = $2 WHERE id = $1`` binds as written.
- ``positional``: the fixed-index behaviour of the legacy GreenLine driver
  shim. WHERE conditions of SELECT/DELETE always bind the first parameter,
  UPDATE SET binds the first and UPDATE WHERE the second, INSERT binds the
  i-th parameter to the i-th column, counting on across VALUES rows. The text
  of the operand is ignored and a missing parameter binds ``None``. Route
  handlers that build their statements in clause order get identical results
  under both strategies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

from greenline.core.logging_utils import utc_now_iso
from greenline.sql.errors import ParameterBindingError
from greenline.sql.statement import CurrentTimestamp, Literal, Operand, Placeholder


class ParameterBinding(str, Enum):
    PLACEHOLDER = "placeholder"
    POSITIONAL = "positional"

    @classmethod
    def parse(cls, value: str | ParameterBinding) -> ParameterBinding:
        try:
            return cls(str(getattr(value, "value", value)).strip().lower())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown parameter binding '{value}'. Expected one of: {choices}") from exc


@dataclass(slots=True)
class ParameterBinder:
    """Binds operands of one statement execution to concrete values."""

    params: Sequence[Any]
    mode: ParameterBinding = ParameterBinding.PLACEHOLDER
    clock: Callable[[], str] = utc_now_iso

    def resolve(self, operand: Operand, *, fixed_index: int) -> Any:
        """Return the value for *operand*.

        *fixed_index* is the parameter position the positional strategy uses
        for the clause being translated.
        """

        if self.mode is ParameterBinding.POSITIONAL:
            if 0 <= fixed_index < len(self.params):
                return self.params[fixed_index]
            return None
        return self.resolve_exact(operand)

    def resolve_exact(self, operand: Operand) -> Any:
        """Resolve *operand* from its own text, whatever the strategy."""

        if isinstance(operand, Placeholder):
            position = operand.index
            if position < 1 or position > len(self.params):
                raise ParameterBindingError(
                    f"Paramètre ${position} manquant ({len(self.params)} paramètre(s) fourni(s))"
                )
            return self.params[position - 1]
        if isinstance(operand, CurrentTimestamp):
            return self.clock()
        if isinstance(operand, Literal):
            return operand.value
        raise TypeError(f"Unsupported operand {operand!r}")
