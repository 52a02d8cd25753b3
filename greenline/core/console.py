"""Interactive console for running SQL statements through the shim."""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable

from greenline.core.config import load_settings
from greenline.core.dependencies import build_dependencies
from greenline.core.logging_utils import configure_logging
from greenline.sql.binding import ParameterBinding
from greenline.sql.errors import QueryError
from greenline.sql.shim import SQLShim

_exit_commands = {"/exit", "exit", "quit", ":q"}


@dataclass
class SQLConsole:
    """Simple terminal prompt built on top of `SQLShim.query`."""

    shim: SQLShim
    input_func: Callable[[str], str] = field(default=input)
    output_func: Callable[[str], None] = field(default=print)
    _params: list[Any] = field(default_factory=list, init=False)

    async def start(self) -> None:
        """Read statements until EOF or an exit command."""

        self.output_func(
            "Type SQL statements to run them. Use '/params [json array]' to set parameters,"
            " '/binding placeholder|positional' to switch binding and '/exit' to leave."
        )

        counter = 1
        while True:
            try:
                raw = self.input_func(f"sql[{counter}]> ")
            except EOFError:
                self.output_func("\nSession ended.")
                break

            statement = raw.strip()
            if not statement:
                continue
            if statement.lower() in _exit_commands:
                self.output_func("Session ended.")
                break
            if statement.startswith("/params"):
                self._handle_params_command(statement)
                continue
            if statement.startswith("/binding"):
                self._handle_binding_command(statement)
                continue

            try:
                result = await self.shim.query(statement, self._params)
            except QueryError as exc:
                self.output_func(f"Error: {exc.message}")
                if exc.detail:
                    self.output_func(f"  detail: {exc.detail}")
                continue

            self.output_func(json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str))
            self._params = []
            counter += 1

    def _handle_params_command(self, command: str) -> None:
        parts = command.split(maxsplit=1)
        if len(parts) == 1:
            self.output_func(f"Parameters: {json.dumps(self._params, default=str)}")
            return
        try:
            values = json.loads(parts[1])
        except json.JSONDecodeError as exc:
            self.output_func(f"Invalid JSON: {exc.msg}")
            return
        if not isinstance(values, list):
            self.output_func("Usage: /params [value, ...]")
            return
        self._params = values
        self.output_func(f"{len(values)} parameter(s) set for the next statement.")

    def _handle_binding_command(self, command: str) -> None:
        parts = command.split(maxsplit=1)
        if len(parts) == 2:
            try:
                self.shim.binding = ParameterBinding.parse(parts[1])
            except ValueError as exc:
                self.output_func(str(exc))
                return
        self.output_func(f"Parameter binding: {self.shim.binding.value}")


async def _run(config_path: str) -> None:
    settings = load_settings(config_path)
    dependencies = await build_dependencies(settings)
    console = SQLConsole(shim=dependencies.shim)
    try:
        await console.start()
    finally:
        await dependencies.shim.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run SQL statements through the GreenLine shim")
    parser.add_argument("--config", default="configs/dev.yaml", help="Path to configuration file")
    parser.add_argument("--debug", action="store_true", help="Log every SQL statement")
    args = parser.parse_args()

    configure_logging(debug=args.debug)
    asyncio.run(_run(args.config))


if __name__ == "__main__":
    main()
