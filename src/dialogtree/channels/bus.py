"""Signal-based message bus and the channel, collector and step built on it."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from types import TracebackType
from typing import Any, Self

from blinker import Signal
from loguru import logger

from dialogtree.channels.events import InboundMessage, OutboundMessage, session_key
from dialogtree.collector import CollectorEvent, ExitRequested, Received
from dialogtree.config import FlowSettings
from dialogtree.errors import ConfigurationError
from dialogtree.step import Step
from dialogtree.types import Channel

InboundHandler = Callable[[InboundMessage], Coroutine[Any, Any, None]]
OutboundHandler = Callable[[OutboundMessage], Coroutine[Any, Any, None]]


class MessageBus:
    """In-process message bus backed by blinker signals.

    Transports publish user messages inbound and deliver outbound ones.
    Conversations subscribe per session with `on_session`.
    """

    def __init__(self) -> None:
        self._inbound = Signal("dialogtree.inbound")
        self._outbound = Signal("dialogtree.outbound")

    @property
    def inbound_listeners(self) -> int:
        return len(self._inbound.receivers)

    async def publish_inbound(self, message: InboundMessage) -> None:
        await self._inbound.send_async(self, message=message)

    async def publish_outbound(self, message: OutboundMessage) -> None:
        await self._outbound.send_async(self, message=message)

    def on_inbound(self, handler: InboundHandler) -> Callable[[], None]:
        return self._connect(self._inbound, handler)

    def on_outbound(self, handler: OutboundHandler) -> Callable[[], None]:
        return self._connect(self._outbound, handler)

    def on_session(
        self, session_id: str, handler: InboundHandler, *, sender_id: str | None = None
    ) -> Callable[[], None]:
        """Subscribe to inbound messages of one session, and of one sender if given."""

        async def _filtered(message: InboundMessage) -> None:
            if message.is_from(session_id, sender_id):
                await handler(message)
            elif message.session_id == session_id:
                logger.debug("bus.session.skip session_id={} sender_id={}", session_id, message.sender_id)

        return self.on_inbound(_filtered)

    @staticmethod
    def _connect(signal: Signal, handler: Callable[[Any], Coroutine[Any, Any, None]]) -> Callable[[], None]:
        async def _receiver(sender: Any, *, message: Any) -> None:
            await handler(message)

        signal.connect(_receiver, weak=False)
        return lambda: signal.disconnect(_receiver)


class BusChannel:
    """Channel for one chat session on a `MessageBus`.

    The channel subscribes to its session as soon as it is created and keeps
    replies in an inbox until a step reads them, so an answer published while
    the question is still being delivered is not lost. Close it when the
    conversation is over.
    """

    def __init__(self, bus: MessageBus, channel: str, chat_id: str, sender_id: str | None = None) -> None:
        self.bus = bus
        self.channel = channel
        self.chat_id = chat_id
        self.sender_id = sender_id
        self._inbox: asyncio.Queue[InboundMessage] = asyncio.Queue()
        self._unsubscribe: Callable[[], None] | None = bus.on_session(
            self.session_id, self._on_inbound, sender_id=sender_id
        )

    @property
    def session_id(self) -> str:
        return session_key(self.channel, self.chat_id)

    @property
    def pending(self) -> int:
        """Number of replies waiting to be collected."""
        return self._inbox.qsize()

    async def _on_inbound(self, message: InboundMessage) -> None:
        self._inbox.put_nowait(message)

    async def next_inbound(self) -> InboundMessage:
        return await self._inbox.get()

    async def send(self, visual: Any) -> OutboundMessage:
        message = OutboundMessage.from_visual(self.channel, self.chat_id, visual)
        await self.bus.publish_outbound(message)
        return message

    def close(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        logger.debug("bus.channel.closed session_id={} pending={}", self.session_id, self.pending)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.close()


class BusCollector:
    """Reads one step's replies from the inbox of a `BusChannel`.

    Replies left over when the step settles stay in the inbox for the next step.
    """

    def __init__(self, channel: BusChannel, settings: FlowSettings) -> None:
        self._channel = channel
        self._settings = settings
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self) -> CollectorEvent:
        message = await self._channel.next_inbound()
        if self._settings.is_exit_keyword(message.content):
            return ExitRequested(message)
        return Received(message)

    async def stop(self) -> None:
        self._closed = True


class BusStep[T](Step[T]):
    """Step collecting from the session of the `BusChannel` it runs in."""

    def create_collector(self, channel: Channel, data: T) -> BusCollector:
        if not isinstance(channel, BusChannel):
            raise ConfigurationError(f"{self!r} needs a BusChannel, got {type(channel).__name__}")
        return BusCollector(channel, self.settings)
