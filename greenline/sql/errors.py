"""Exceptions raised by the SQL compatibility shim.

Every error that leaves :meth:`greenline.sql.shim.SQLShim.query` carries the
original SQL text and the parameter list so route handlers and logs can
diagnose the failure without re-running the statement.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

SELECT_TABLE_MISSING = "Table non trouvée dans la requête SELECT"
SELECT_UNRECOGNISED = "Format SELECT non reconnu"
INSERT_UNRECOGNISED = "Format INSERT non reconnu"
UPDATE_UNRECOGNISED = "Format UPDATE non reconnu"
DELETE_UNRECOGNISED = "Format DELETE non reconnu"

MISSING_BACKEND_CONFIG = (
    "Configuration Supabase manquante. Veuillez définir les variables "
    "d'environnement SUPABASE_URL et SUPABASE_SERVICE_ROLE_KEY."
)


class QueryError(Exception):
    """Base class for failures while translating or executing a statement."""

    def __init__(
        self,
        message: str,
        *,
        sql: str | None = None,
        params: Sequence[Any] | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.sql = sql
        self.params = list(params) if params is not None else None
        self.detail = detail

    def attach(self, sql: str, params: Sequence[Any]) -> None:
        """Record the statement context if the raiser did not know it."""

        if self.sql is None:
            self.sql = sql
        if self.params is None:
            self.params = list(params)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.message,
            "type": type(self).__name__,
            "query": self.sql,
            "params": self.params,
        }
        if self.detail:
            payload["detail"] = self.detail
        return payload


class UnparsableStatementError(QueryError):
    """A required fragment (table, columns, assignments) could not be extracted."""

    def __init__(self, kind: str, message: str, *, detail: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, detail=detail, **kwargs)
        self.kind = kind


class UnsupportedStatementError(QueryError):
    """The leading keyword is not SELECT, INSERT, UPDATE or DELETE."""

    def __init__(self, keyword: str, **kwargs: Any) -> None:
        super().__init__(f"Type de requête non supporté: {keyword}", **kwargs)
        self.keyword = keyword


class UnsupportedPredicateError(QueryError):
    """A WHERE condition uses syntax the table backend cannot express."""

    def __init__(self, predicate: str, **kwargs: Any) -> None:
        super().__init__(f"Prédicat non supporté: {predicate}", **kwargs)
        self.predicate = predicate


class ParameterBindingError(QueryError):
    """A `$n` placeholder references a parameter the caller did not supply."""


class BackendError(QueryError):
    """The table backend reported an error while executing the statement."""

    def __init__(self, original: Any, **kwargs: Any) -> None:
        if isinstance(original, Mapping):
            message = original.get("message") or str(original)
        else:
            message = getattr(original, "message", None) or str(original)
        super().__init__(str(message), **kwargs)
        self.original = original


class BackendConfigurationError(RuntimeError):
    """Raised when the hosted backend cannot be configured from the environment."""
