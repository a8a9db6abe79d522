"""Depth-first, single-path traversal of a step tree."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from loguru import logger

from dialogtree.errors import InvalidTreeError
from dialogtree.node import StepNode
from dialogtree.outcomes import Ending
from dialogtree.step import Step
from dialogtree.types import Channel, resolve


class Runner[T]:
    """Runs one conversation over a tree of step nodes.

    A runner owns the conversation data between steps and records every step
    it executes, in order. Use one runner per run.
    """

    def __init__(self, initial_data: T) -> None:
        self.initial_data = initial_data
        self.ran: list[Step[T]] = []
        self.ending: Ending | None = None
        self.run_id = uuid.uuid4().hex[:8]

    @staticmethod
    def find_invalid(node: StepNode[T], seen: set[int] | None = None) -> StepNode[T] | None:
        """Return the first reachable node breaking the branching rule, if any."""
        seen = set() if seen is None else seen
        if id(node) in seen:
            return None
        if not node.has_valid_children():
            return node
        seen.add(id(node))
        for child in node.children:
            invalid = Runner.find_invalid(child, seen)
            if invalid is not None:
                return invalid
        return None

    @staticmethod
    def valid(node: StepNode[T]) -> bool:
        """Check that every node with 2 or more children has conditions on all of them."""
        return Runner.find_invalid(node) is None

    @property
    def terminated(self) -> bool:
        """Whether the run ended because the user left or went quiet."""
        return self.ending in (Ending.EXITED, Ending.INACTIVE)

    def index_of(self, step: Step[T]) -> int:
        """Position of `step` in the executed steps, -1 if it never ran."""
        for index, ran in enumerate(self.ran):
            if ran is step:
                return index
        return -1

    def indexes_of(self, steps: Sequence[Step[T]]) -> list[int]:
        return [self.index_of(step) for step in steps]

    async def first_node(self, nodes: Sequence[StepNode[T]]) -> StepNode[T] | None:
        """Return the first node whose condition passes on the initial data."""
        for node in nodes:
            if node.condition is None or await resolve(node.condition(self.initial_data)):
                return node
        return None

    async def run(self, root: StepNode[T], channel: Channel) -> T:
        """Validate the tree under `root`, then execute it."""
        invalid = Runner.find_invalid(root)
        if invalid is not None:
            raise InvalidTreeError(invalid)
        return await self.execute(root, channel)

    async def run_first(self, roots: Sequence[StepNode[T]], channel: Channel) -> T:
        """Run the first root whose condition passes, or return the initial data."""
        matched = await self.first_node(roots)
        if matched is None:
            return self.initial_data
        return await self.run(matched, channel)

    async def execute(self, root: StepNode[T], channel: Channel) -> T:
        """Execute the tree under `root` without validating it."""
        node: StepNode[T] | None = root
        data = self.initial_data
        with logger.contextualize(run=self.run_id):
            logger.info("runner.start root={}", root.step.name)
            while node is not None:
                step = node.step
                await step.send_visual(channel, data)
                if not step.should_run_collector():
                    self.ending = Ending.ENDED
                    self.ran.append(step)
                    logger.debug("runner.step.end step={} index={}", step.name, len(self.ran) - 1)
                    break
                result = await node.collect(channel, data)
                data = result.data
                self.ending = result.ending
                self.ran.append(step)
                logger.debug("runner.step.done step={} ending={}", step.name, result.ending)
                node = await node.get_next(data)
            logger.info("runner.finish steps={} ending={}", len(self.ran), self.ending)
        return data
