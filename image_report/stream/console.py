"""Console output for report stream events using Rich.

Payloads are printed verbatim: markup, emoji and highlighting are disabled,
lines are never wrapped and non-ASCII text is kept as is, so JSON blocks can
be copied out of CI logs.
"""

from __future__ import annotations

import json
from typing import IO, Any, Iterator

from rich.console import Console, ConsoleOptions
from rich.segment import Segment


def plain_console(stderr: bool = False, file: IO[str] | None = None) -> Console:
    """Build a Console that prints its input without any rich rendering."""
    return Console(
        file=file,
        stderr=stderr,
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )


def _to_json(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)


class _TabbedLine:
    """One output line emitted as a raw segment, so tabs are not expanded."""

    def __init__(self, text: str, style: str | None = None):
        self.text = text
        self.style = style

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> Iterator[Segment]:
        yield Segment(self.text, console.get_style(self.style) if self.style else None)
        yield Segment.line()


class ConsoleReporter:
    """Prints stream events and session diagnostics.

    Report blocks, info lines and notices go to stdout; warnings, errors and
    remediation hints go to stderr.
    """

    def __init__(self, console: Console | None = None, error_console: Console | None = None):
        self.console = console or plain_console()
        self.error_console = error_console or plain_console(stderr=True)

    def report(self, report: Any) -> None:
        """Print a decoded report as an indented JSON block."""
        self.console.print("report =>", _to_json(report, indent=2))

    def raw_report(self, data: str) -> None:
        """Print a report payload that could not be decoded."""
        self.console.print("report =>", data)

    def info(self, message: str) -> None:
        self.console.print(_TabbedLine(f"\t\t{_to_json(message)}"))

    def warn(self, message: str) -> None:
        self.error_console.print(_TabbedLine(f"Warning:\t{_to_json(message)}", style="yellow"))

    def notice(self, message: str) -> None:
        self.console.print(message, style="cyan")

    def error(self, error: BaseException) -> None:
        """Print a failure the way it was raised."""
        self.error_console.print(f"{type(error).__name__}: {error}", style="red")

    def hint(self, message: str) -> None:
        self.error_console.print(message, style="yellow")
