"""Tests for the interactive SQL console."""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Iterator

from greenline.core.console import SQLConsole
from greenline.integrations.in_memory_backend import InMemoryTableBackend
from greenline.sql.binding import ParameterBinding
from greenline.sql.shim import SQLShim


def _inputs(lines: list[str]) -> Callable[[str], str]:
    iterator: Iterator[str] = iter(lines)

    def _next(prompt: str) -> str:
        try:
            return next(iterator)
        except StopIteration as exc:
            raise EOFError from exc

    return _next


def _console(lines: list[str]) -> tuple[SQLConsole, list[str], InMemoryTableBackend]:
    backend = InMemoryTableBackend()
    backend.prime("orders", [{"id": "o-1", "status": "pending"}, {"id": "o-2", "status": "shipped"}])
    outputs: list[str] = []
    console = SQLConsole(shim=SQLShim(backend), input_func=_inputs(lines), output_func=outputs.append)
    return console, outputs, backend


def test_console_runs_statements_with_parameters() -> None:
    console, outputs, _ = _console(
        [
            '/params ["shipped"]',
            "SELECT id FROM orders WHERE status = $1",
            "/params",
            "/exit",
        ]
    )

    asyncio.run(console.start())

    assert "1 parameter(s) set for the next statement." in outputs
    assert json.loads(outputs[2]) == {"rows": [{"id": "o-2"}]}
    assert outputs[3] == "Parameters: []"
    assert outputs[-1] == "Session ended."


def test_console_reports_errors_and_keeps_going() -> None:
    console, outputs, _ = _console(["DROP TABLE orders", "SELECT * FROM orders WHERE a = b"])

    asyncio.run(console.start())

    assert "Error: Type de requête non supporté: DROP" in outputs
    assert any(line.startswith("Error: Prédicat non supporté") for line in outputs)
    assert outputs[-1] == "\nSession ended."


def test_console_switches_binding() -> None:
    console, outputs, _ = _console(["/binding positional", "/binding by-name", "/binding"])

    asyncio.run(console.start())

    assert console.shim.binding is ParameterBinding.POSITIONAL
    assert outputs[1] == "Parameter binding: positional"
    assert outputs[2].startswith("Unknown parameter binding 'by-name'")
    assert outputs[3] == "Parameter binding: positional"


def test_console_rejects_invalid_params() -> None:
    console, outputs, _ = _console(["/params {not json", '/params {"a": 1}'])

    asyncio.run(console.start())

    assert outputs[1].startswith("Invalid JSON:")
    assert outputs[2] == "Usage: /params [value, ...]"
