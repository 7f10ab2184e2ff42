"""Console output abstraction.

Release steps report progress through ``ConsoleProtocol`` so they never
depend on a terminal library. ``RichConsole`` is used by the CLI,
``MockConsole`` captures output in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # commands, previews
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output.

    The pipeline, the git clients and the collaborators only talk to this
    protocol; ``RichConsole`` and ``MockConsole`` implement it.
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling.

        Args:
            message: Plain text; markup is not interpreted.
            style: Style applied to the whole line.
        """
        ...

    def success(self, message: str) -> None:
        """Report a finished step (``OK ...``)."""
        ...

    def error(self, message: str) -> None:
        """Report a fatal failure (``error: ...``)."""
        ...

    def warning(self, message: str) -> None:
        """Report a recovered problem, such as a file that could not be reset."""
        ...

    def info(self, message: str) -> None:
        """Report a neutral fact, such as a release URL."""
        ...

    def header(self, message: str) -> None:
        """Start a section (``Let's release ...``)."""
        ...

    def preview(self, title: str, body: str) -> None:
        """Show a titled multi-line block.

        Used for the changelog, the changeset and release notes. An empty
        or blank ``body`` prints nothing.

        Args:
            title: Label printed above the block.
            body: Block content, printed dimmed and verbatim.
        """
        ...


class RichConsole:
    """Console implementation using Rich library.

    Messages are escaped before the status prefix markup is added, so text
    coming from git or hooks never renders as Rich markup.
    """

    def __init__(self) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{_escape(message)}[/blue bold]")

    def preview(self, title: str, body: str) -> None:
        if not body.strip():
            return
        self._console.print(f"[bold]{_escape(title)}:[/bold]")
        self._console.print(body, style="dim", markup=False)


def _escape(text: str) -> str:
    from rich.markup import escape

    return escape(text)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    """Factory for the outputs list (keeps the field type precise)."""
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing.

    Every call appends an ``OutputRecord``; the helpers below query them.

    Example:
        console = MockConsole()
        pipeline = ReleasePipeline(config, console=console, root=repo)
        pipeline.run()
        assert console.find("Let's release demo")
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def preview(self, title: str, body: str) -> None:
        if body.strip():
            self.outputs.append(OutputRecord(f"{title}:\n{body}", Style.DIM))

    # Test helper methods

    def clear(self) -> None:
        """Drop all captured output."""
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        """Captured messages, in order."""
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        """All captured messages joined by newlines."""
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        """Whether ``error()`` was called."""
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        """Whether ``warning()`` was called."""
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Records whose message contains ``substring``.

        Args:
            substring: Text to look for.

        Returns:
            Matching records (empty, and so falsy, when nothing matched).
        """
        return [o for o in self.outputs if substring in o.message]
