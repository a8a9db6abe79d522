from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pytest

from dialogtree import QueueCollector, Step, TextMessage, Visual
from dialogtree.config import FlowSettings

EXIT = object()


def visual_text(visual: Any) -> str:
    return visual.text if isinstance(visual, Visual) else str(visual)


class FakeChannel:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[Any] = []
        self.error = error

    async def send(self, visual: Any) -> TextMessage:
        if self.error is not None:
            raise self.error
        self.sent.append(visual)
        return TextMessage(visual_text(visual))

    @property
    def texts(self) -> list[str]:
        return [visual_text(visual) for visual in self.sent]


def feed(collector: QueueCollector, items: Iterable[Any]) -> None:
    for item in items:
        if item is EXIT:
            collector.request_exit(TextMessage("exit"))
        elif isinstance(item, Exception):
            collector.fail(item)
        else:
            collector.push(TextMessage(item))


class ScriptedStep(Step):
    """Step whose collectors are pre-loaded with scripted inputs.

    Every collector takes the next script from `scripts`; an empty script
    leaves the collector waiting forever.
    """

    def __init__(self, *args: Any, scripts: Iterable[Iterable[Any]] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.scripts = [list(script) for script in scripts]
        self.collectors: list[QueueCollector] = []

    def create_collector(self, channel: Any, data: Any) -> QueueCollector:
        collector = QueueCollector()
        if self.scripts:
            feed(collector, self.scripts.pop(0))
        self.collectors.append(collector)
        return collector


@pytest.fixture
def settings() -> FlowSettings:
    return FlowSettings(_env_file=None)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()
