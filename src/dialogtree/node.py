"""Tree composition of steps."""

from __future__ import annotations

from loguru import logger

from dialogtree.outcomes import StepResult
from dialogtree.step import Step
from dialogtree.tree import TreeNode
from dialogtree.types import Channel, Condition, resolve


class StepNode[T](TreeNode["StepNode[T]"]):
    """Places a step in a conversation tree.

    The branch condition belongs to the node, defaulting to the step's own, so
    the same step can hang under several parents with different conditions.
    """

    def __init__(self, step: Step[T], condition: Condition[T] | None = None) -> None:
        super().__init__()
        self.step = step
        self.condition = condition if condition is not None else step.condition

    def __repr__(self) -> str:
        return f"<StepNode step={self.step.name!r} children={len(self.children)}>"

    def has_valid_children(self) -> bool:
        """A node with 2 or more children needs a condition on every child."""
        if len(self.children) <= 1:
            return True
        return all(child.condition is not None for child in self.children)

    async def get_next(self, data: T) -> StepNode[T] | None:
        """Return the first child whose condition is absent or passes."""
        for child in self.children:
            if child.condition is None or await resolve(child.condition(data)):
                return child
        return None

    def terminate_here(self) -> None:
        """Drop all children so there is no next step."""
        self.set_children([])

    async def collect(self, channel: Channel, data: T) -> StepResult[T]:
        """Collect through the step, ending the tree here on exit or inactivity."""
        result = await self.step.collect(channel, data)
        if result.terminate:
            logger.debug("node.terminate step={} ending={}", self.step.name, result.ending)
            self.terminate_here()
        return result
