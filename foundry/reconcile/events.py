"""Progress sinks for human-readable engine notifications.

The engine never prints. It reports progress to a ``ProgressSink``; the
default forwards to loguru, and ``RichProgressSink`` renders to a terminal.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from rich.console import Console


class ProgressSink(Protocol):
    def info(self, msg: str) -> None: ...

    def ok(self, msg: str) -> None: ...

    def warn(self, msg: str) -> None: ...

    def error(self, msg: str) -> None: ...


class LoguruProgressSink:
    """Route progress messages to the loguru logger."""

    def info(self, msg: str) -> None:
        logger.info(msg)

    def ok(self, msg: str) -> None:
        logger.success(msg)

    def warn(self, msg: str) -> None:
        logger.warning(msg)

    def error(self, msg: str) -> None:
        logger.error(msg)


class RichProgressSink:
    """Render progress messages with rich markup."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")


class RecordingProgressSink:
    """Keep (level, message) pairs in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def info(self, msg: str) -> None:
        self.events.append(("info", msg))

    def ok(self, msg: str) -> None:
        self.events.append(("ok", msg))

    def warn(self, msg: str) -> None:
        self.events.append(("warn", msg))

    def error(self, msg: str) -> None:
        self.events.append(("error", msg))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m in self.events if level is None or lvl == level]


def coalesce_sink(sink: ProgressSink | None) -> ProgressSink:
    return sink if sink is not None else LoguruProgressSink()
