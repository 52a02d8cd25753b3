"""Tests for JSONL observability sinks."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from greenline.core.logging_utils import channel_filename
from greenline.core.observability import JSONLQueryLogger


def _load_events(path: Path) -> list[dict[str, object]]:
    with path.open("r", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle]


def test_jsonl_query_logger_appends_events(tmp_path: Path) -> None:
    logger = JSONLQueryLogger(base_dir=tmp_path)

    logger.log_event("queries", "query_received", {"query": "SELECT * FROM t", "params": ["é"]})
    logger.log_event("queries", "query_completed", {"kind": "SELECT", "table": "t", "row_count": 0})

    files = sorted(tmp_path.glob("*-queries.jsonl"))
    assert len(files) == 1
    events = _load_events(files[0])
    assert [event["event"] for event in events] == ["query_received", "query_completed"]
    assert events[0]["params"] == ["é"]
    assert events[1]["row_count"] == 0
    assert "timestamp" in events[0]


def test_jsonl_query_logger_drops_empty_fields(tmp_path: Path) -> None:
    logger = JSONLQueryLogger(base_dir=tmp_path)

    logger.log_event("failures", "query_failed", {"table": None, "error": "boom", "detail": None})

    (target,) = sorted(tmp_path.glob("*-failures.jsonl"))
    (event,) = _load_events(target)
    assert "table" not in event
    assert "detail" not in event
    assert event["error"] == "boom"


def test_jsonl_query_logger_truncates_long_queries(tmp_path: Path) -> None:
    logger = JSONLQueryLogger(base_dir=tmp_path, max_query_chars=10)

    logger.log_event("queries", "query_received", {"query": "SELECT * FROM very_long_table_name"})

    (target,) = sorted(tmp_path.glob("*-queries.jsonl"))
    (event,) = _load_events(target)
    assert event["query"] == "SELECT * F..."


def test_channel_filename_replaces_unsafe_characters() -> None:
    started_at = datetime(2026, 5, 4, 3, 2, 1, 123456, tzinfo=UTC)

    assert channel_filename("api/queries v2", started_at) == "20260504T030201123-api-queries-v2.jsonl"
    assert channel_filename("  ", started_at).endswith("-queries.jsonl")
