"""Terminal channel: rich for output, prompt_toolkit for input."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.panel import Panel

from dialogtree.collector import QueueCollector
from dialogtree.config import FlowSettings
from dialogtree.step import Step
from dialogtree.types import Channel, TextMessage, Visual


class ConsoleChannel:
    """Prints visuals to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    async def send(self, visual: Any) -> TextMessage:
        if isinstance(visual, Visual):
            text = visual.text
            if visual.embed:
                title = str(visual.embed.get("title", ""))
                body = str(visual.embed.get("description", ""))
                self.console.print(Panel(body, title=title or None))
        else:
            text = str(visual)
        if text:
            self.console.print(f"[bold yellow]>[/bold yellow] {text}")
        return TextMessage(text)


class ConsoleCollector(QueueCollector):
    """Reads lines from the terminal until stopped."""

    def __init__(self, session: PromptSession[str], settings: FlowSettings, prompt: str = "$ ") -> None:
        super().__init__()
        self._session = session
        self._settings = settings
        self._prompt = prompt
        self._reader = asyncio.create_task(self._read_lines())

    async def _read_lines(self) -> None:
        while not self.closed:
            try:
                with patch_stdout(raw=True):
                    line = await self._session.prompt_async(self._prompt)
            except (EOFError, KeyboardInterrupt):
                self.request_exit()
                return
            message = TextMessage(line)
            if self._settings.is_exit_keyword(line):
                self.request_exit(message)
                return
            self.push(message)

    async def on_stop(self) -> None:
        self._reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._reader
        logger.debug("console.collector.stopped")


class ConsoleStep[T](Step[T]):
    """Step collecting its answer from the terminal."""

    def __init__(self, *args: Any, session: PromptSession[str] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._session = session

    def create_collector(self, channel: Channel, data: T) -> ConsoleCollector:
        if self._session is None:
            self._session = PromptSession()
        return ConsoleCollector(self._session, self.settings)
