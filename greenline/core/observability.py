"""Query event sinks used by the SQL shim."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from greenline.core.logging_utils import resolve_log_path, utc_now_iso


class QueryObservationSink(Protocol):
    """Receives ``query_received``, ``query_completed`` and ``query_failed`` events."""

    def log_event(self, channel: str, event: str, payload: dict[str, Any]) -> None:  # pragma: no cover - interface
        ...


@dataclass(slots=True)
class JSONLQueryLogger(QueryObservationSink):
    """Appends one JSON object per shim event to ``<base_dir>/<stamp>-<channel>.jsonl``.

    Fields whose value is ``None`` are left out and the ``query`` text is cut
    to *max_query_chars*. Values JSON cannot encode (dates, decimals) are
    written with ``str``. Writes are blocking; `SQLShim` calls the sink from a
    worker thread.
    """

    base_dir: Path
    max_query_chars: int = 2000

    def log_event(self, channel: str, event: str, payload: dict[str, Any]) -> None:  # type: ignore[override]
        record: dict[str, Any] = {"event": event, "timestamp": utc_now_iso()}
        record.update((key, value) for key, value in payload.items() if value is not None)
        query = record.get("query")
        if isinstance(query, str) and len(query) > self.max_query_chars:
            record["query"] = query[: self.max_query_chars] + "..."

        target = resolve_log_path(self.base_dir, channel)
        with target.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False, default=str))
            handle.write("\n")
