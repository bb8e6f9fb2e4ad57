"""Terminal helpers: colored status lines and interactive prompts."""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from rich.console import Console
from rich.markup import escape

InputFunc = Callable[[str], str]

_RULE = "=" * 41


class ConsoleIO:
    """Routes all operator-facing output and prompts through one object."""

    def __init__(self, *, console: Optional[Console] = None, input_func: Optional[InputFunc] = None) -> None:
        self._console = console or Console(highlight=False, emoji=False)
        self._input = input_func or input

    def _styled(self, style: str, message: str) -> None:
        self._console.print(f"[{style}]{escape(message)}[/{style}]", soft_wrap=True)

    def header(self, title: str) -> None:
        self.line()
        self._styled("blue", _RULE)
        self._styled("blue", title)
        self._styled("blue", _RULE)
        self.line()

    def success(self, message: str) -> None:
        self._styled("green", message)

    def warning(self, message: str) -> None:
        self._styled("yellow", message)

    def error(self, message: str) -> None:
        self._styled("red", message)

    def line(self, text: str = "") -> None:
        # Tables and documents bypass rich so column widths are never re-wrapped.
        print(text)

    def lines(self, rows: Iterable[str]) -> None:
        for row in rows:
            print(row)

    def ask(self, prompt: str) -> str:
        return self._input(prompt).strip()

    def confirm(self, prompt: str, *, accept: Iterable[str] = ("y", "Y")) -> bool:
        return self.ask(prompt) in set(accept)

    def pause(self) -> None:
        self._input("Press Enter to continue...")


__all__ = ["ConsoleIO", "InputFunc"]
