"""Collector contract: the seam where inbound message transports plug in.

A collector is created fresh for every collection attempt of a step. It yields
source events in arrival order until the step stops it:

- `Received` for every inbound message,
- `ExitRequested` when the user asks to leave,
- `CollectorFailed` when the transport itself breaks.

The step derives accept, reject and inactivity from these events.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from dialogtree.types import Message


@dataclass(frozen=True)
class Received:
    message: Message


@dataclass(frozen=True)
class ExitRequested:
    message: Message | None = None


@dataclass(frozen=True)
class CollectorFailed:
    error: Exception


type CollectorEvent = Received | ExitRequested | CollectorFailed


class Collector(Protocol):
    """Minimal async contract for collectors."""

    async def receive(self) -> CollectorEvent: ...

    async def stop(self) -> None: ...


class QueueCollector:
    """In-memory collector backed by an asyncio queue.

    Adapters feed it with `push`, `request_exit` and `fail`, and override
    `on_stop` to release whatever they hold (input streams, subscriptions).
    """

    def __init__(self) -> None:
        self._events: asyncio.Queue[CollectorEvent] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, message: Message) -> None:
        self._put(Received(message))

    def request_exit(self, message: Message | None = None) -> None:
        self._put(ExitRequested(message))

    def fail(self, error: Exception) -> None:
        self._put(CollectorFailed(error))

    def _put(self, event: CollectorEvent) -> None:
        if self._closed:
            logger.debug("collector.closed.ignored event={}", type(event).__name__)
            return
        self._events.put_nowait(event)

    async def receive(self) -> CollectorEvent:
        return await self._events.get()

    async def stop(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.on_stop()

    async def on_stop(self) -> None:
        """Release adapter resources. Called once."""
