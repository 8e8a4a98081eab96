"""Console output abstraction.

The release run reports progress through a ConsoleProtocol instead of a
logging framework: the coordinator announces lifecycle steps, the git backend
echoes the commands it issues, and failures are surfaced as errors. Tests
swap in MockConsole to assert on what a run reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Label written before the message for each levelled call.
_LABELS = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}


class ConsoleProtocol(Protocol):
    """Where a release run reports what it does.

    Messages are plain text: implementations must not interpret brackets in
    them (branch names and "[release]" prefixes contain them).
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console backed by Rich.

    Errors and warnings go to stderr so that a build log keeps them even
    when stdout is captured separately.
    """

    _RICH_STYLES = {
        Style.DEFAULT: "",
        Style.SUCCESS: "green",
        Style.ERROR: "red bold",
        Style.WARNING: "yellow",
        Style.INFO: "cyan",
        Style.DIM: "dim",
        Style.HEADER: "blue bold",
    }

    def __init__(self) -> None:
        # Import Rich lazily so that library users never pay for it
        from rich.console import Console

        self._out = Console(highlight=False)
        self._err = Console(stderr=True, highlight=False)

    def _levelled(self, style: Style, message: str) -> None:
        from rich.text import Text

        # Text is never parsed for markup, so brackets print as-is.
        line = Text(_LABELS[style], style=self._RICH_STYLES[style])
        line.append(f" {message}")
        stream = self._err if style in (Style.ERROR, Style.WARNING) else self._out
        stream.print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        from rich.text import Text

        self._out.print(Text(message, style=self._RICH_STYLES[style]))

    def success(self, message: str) -> None:
        self._levelled(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._levelled(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._levelled(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._levelled(Style.INFO, message)

    def header(self, message: str) -> None:
        self.newline()
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self._out.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output for assertions in tests.

    Levelled messages are stored with their label ("error: push failed").
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def _levelled(self, style: Style, message: str) -> None:
        self.outputs.append(OutputRecord(f"{_LABELS[style]} {message}", style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._levelled(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._levelled(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._levelled(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._levelled(Style.INFO, message)

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Assertion helpers

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    @property
    def commands(self) -> list[str]:
        """Echoed commands (dim output), in the order they were printed."""
        return self._with_style(Style.DIM)

    def _with_style(self, style: Style) -> list[str]:
        return [record.message for record in self.outputs if record.style is style]

    def has_error(self) -> bool:
        return bool(self._with_style(Style.ERROR))

    def has_warning(self) -> bool:
        return bool(self._with_style(Style.WARNING))

    def find(self, substring: str) -> list[OutputRecord]:
        return [record for record in self.outputs if substring in record.message]

    def count(self, style: Style) -> int:
        return len(self._with_style(style))
