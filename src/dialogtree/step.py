"""One conversational turn: send a visual, collect one accepted response."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from loguru import logger

from dialogtree.collector import Collector, CollectorFailed, ExitRequested
from dialogtree.config import FlowSettings, get_settings
from dialogtree.errors import EndStepCollectError, Rejection
from dialogtree.outcomes import Accept, Ending, Exit, Failure, Inactivity, Outcome, Reject, StepResult
from dialogtree.types import Channel, Condition, Message, StoredMessage, Transform, Visual, VisualGenerator, resolve


class Step[T](ABC):
    """Send/collect state machine shared by every kind of step.

    Subclasses decide where inbound messages come from by implementing
    `create_collector`. Everything else, including how rejections, exits and
    timeouts settle a collection, lives here.

    A step holds no tree structure, so one instance may sit under several
    nodes. Its message log is shared by every run that visits it.
    """

    def __init__(
        self,
        visual: VisualGenerator[T] | Any,
        transform: Transform[T] | None = None,
        condition: Condition[T] | None = None,
        duration: float = 0.0,
        *,
        name: str | None = None,
        settings: FlowSettings | None = None,
    ) -> None:
        if duration < 0:
            raise ValueError("duration must not be negative")
        self.visual = visual
        self.transform = transform
        self.condition = condition
        self.duration = duration
        self.name = name or type(self).__name__
        self.settings = settings or get_settings()
        self.messages: list[StoredMessage] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    @abstractmethod
    def create_collector(self, channel: Channel, data: T) -> Collector:
        """Create the collector for one collection attempt."""

    def should_run_collector(self) -> bool:
        return True

    async def get_visual(self, data: T) -> Any | Sequence[Any]:
        """Return the visual(s) for `data`. Static visuals are returned as is."""
        if callable(self.visual):
            return await resolve(self.visual(data))
        return self.visual

    def feedback_visual(self, text: str) -> Any:
        """Build the visual for text this step sends on its own."""
        return Visual(text=text)

    async def send_message(self, visual: Any, channel: Channel) -> Message:
        sent = await channel.send(visual)
        self.store_bot_message(sent)
        return sent

    async def send_visual(self, channel: Channel, data: T) -> Message | list[Message]:
        """Send the visual(s) generated for `data` in declared order."""
        visual = await self.get_visual(data)
        if isinstance(visual, list | tuple):
            return [await self.send_message(item, channel) for item in visual]
        return await self.send_message(visual, channel)

    def store_user_message(self, message: Message) -> None:
        self.messages.append(StoredMessage(message, from_user=True))

    def store_bot_message(self, message: Message) -> None:
        self.messages.append(StoredMessage(message, from_user=False))

    async def on_reject(self, message: Message, error: Rejection, channel: Channel, data: T) -> None:
        """Tell the user why `message` was rejected."""
        feedback = error.message or self.settings.rejected_text
        await self.send_message(self.feedback_visual(feedback), channel)

    async def on_exit(self, message: Message | None, channel: Channel, data: T) -> None:
        if self.settings.exit_text:
            await self.send_message(self.feedback_visual(self.settings.exit_text), channel)

    async def on_inactivity(self, channel: Channel, data: T) -> None:
        if self.settings.inactivity_text:
            await self.send_message(self.feedback_visual(self.settings.inactivity_text), channel)

    @staticmethod
    async def evaluate(transform: Transform[T], message: Message, data: T) -> Outcome[T]:
        """Run `transform` on one message and classify the result."""
        try:
            new_data = await resolve(transform(message, data))
        except Rejection as err:
            return Reject(message, err)
        except Exception as err:
            return Failure(err, message)
        return Accept(message, new_data)

    async def collect(self, channel: Channel, data: T) -> StepResult[T]:
        """Collect messages until one is accepted, or the user leaves.

        Rejected messages get feedback and collection continues. Exit and
        inactivity resolve with `data` unchanged and mark the result as
        terminating. Any other transform error is raised.
        """
        transform = self.transform
        if transform is None:
            return StepResult(data, Ending.SKIPPED)

        collector = self.create_collector(channel, data)
        logger.debug("step.collect.start step={} duration={}", self.name, self.duration)
        try:
            outcome = await self._await_outcome(collector, transform, channel, data)
        finally:
            await collector.stop()
        return await self._settle(outcome, channel, data)

    async def _await_outcome(
        self, collector: Collector, transform: Transform[T], channel: Channel, data: T
    ) -> Outcome[T]:
        timeout = self.duration if self.duration > 0 else None
        try:
            async with asyncio.timeout(timeout) as deadline:
                while True:
                    event = await collector.receive()
                    if isinstance(event, ExitRequested):
                        return Exit(event.message)
                    if isinstance(event, CollectorFailed):
                        return Failure(event.error)
                    outcome = await self.evaluate(transform, event.message, data)
                    if not isinstance(outcome, Reject):
                        return outcome
                    logger.debug("step.collect.reject step={} reason={}", self.name, outcome.error.message)
                    self.store_user_message(outcome.message)
                    await self.on_reject(outcome.message, outcome.error, channel, data)
        except TimeoutError:
            if deadline.expired():
                return Inactivity()
            raise

    async def _settle(self, outcome: Outcome[T], channel: Channel, data: T) -> StepResult[T]:
        if isinstance(outcome, Accept):
            self.store_user_message(outcome.message)
            logger.debug("step.collect.accept step={}", self.name)
            return StepResult(outcome.data, Ending.ACCEPTED)
        if isinstance(outcome, Exit):
            if outcome.message is not None:
                self.store_user_message(outcome.message)
            logger.info("step.collect.exit step={}", self.name)
            await self.on_exit(outcome.message, channel, data)
            return StepResult(data, Ending.EXITED)
        if isinstance(outcome, Inactivity):
            logger.info("step.collect.inactivity step={} duration={}", self.name, self.duration)
            await self.on_inactivity(channel, data)
            return StepResult(data, Ending.INACTIVE)
        if isinstance(outcome, Failure):
            if outcome.message is not None:
                self.store_user_message(outcome.message)
            logger.debug("step.collect.error step={} error={!r}", self.name, outcome.error)
            raise outcome.error
        raise TypeError(f"unexpected outcome: {outcome!r}")


class EndStep[T](Step[T]):
    """Step that only renders its visual and never waits for input."""

    def should_run_collector(self) -> bool:
        return False

    def create_collector(self, channel: Channel, data: T) -> Collector:
        raise EndStepCollectError(f"{self!r} never collects messages")
