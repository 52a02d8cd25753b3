"""Logging setup and helpers for the query event files."""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

_LOG_PATHS: dict[tuple[str, str], Path] = {}


def configure_logging(debug: bool) -> None:
    """Initialise root logging for the entry points unless already configured."""

    root_logger = logging.getLogger()
    if root_logger.handlers:
        if debug:
            root_logger.setLevel(logging.DEBUG)
        return
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)


def utc_now_iso() -> str:
    """Return the current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""

    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def channel_filename(channel: str, started_at: datetime | None = None) -> str:
    """Return ``<yyyymmddThhmmssmmm>-<channel>.jsonl`` with unsafe characters replaced."""

    moment = started_at or datetime.now(UTC)
    safe = re.sub(r"[^A-Za-z0-9_-]+", "-", channel.strip()) or "queries"
    return f"{moment.strftime('%Y%m%dT%H%M%S%f')[:-3]}-{safe}.jsonl"


def resolve_log_path(base_dir: Path, channel: str) -> Path:
    """Return the file that receives *channel* events for this process.

    The first call per directory and channel picks a timestamped name; later
    calls reuse it so one run appends to a single file.
    """

    directory = base_dir.expanduser().resolve()
    key = (str(directory), channel)
    path = _LOG_PATHS.get(key)
    if path is None:
        directory.mkdir(parents=True, exist_ok=True)
        path = _LOG_PATHS[key] = directory / channel_filename(channel)
    return path
