"""Name and age conversation used by the CLI demo."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from dialogtree.errors import Rejection
from dialogtree.node import StepNode
from dialogtree.step import Step
from dialogtree.types import Message, Visual

DRINKING_AGE = 20


@dataclass(frozen=True)
class AgeData:
    name: str | None = None
    age: int | None = None


async def ask_name(message: Message, data: AgeData) -> AgeData:
    name = message.content.strip()
    if not name:
        raise Rejection("Please type a name.")
    return replace(data, name=name)


async def ask_age(message: Message, data: AgeData) -> AgeData:
    try:
        age = int(message.content.strip())
    except ValueError:
        raise Rejection("That's not a number!") from None
    if age < 0:
        raise Rejection("Age can't be negative.")
    return replace(data, age=age)


async def is_too_old(data: AgeData) -> bool:
    return data.age is not None and data.age >= DRINKING_AGE


async def is_too_young(data: AgeData) -> bool:
    return data.age is not None and data.age < DRINKING_AGE


def build_age_tree(step_type: type[Step[AgeData]], **step_kwargs: Any) -> StepNode[AgeData]:
    """Build name -> age -> {too old, too young} with `step_type` for every step."""
    name_step = step_type(Visual("What's your name?"), ask_name, name="ask name", **step_kwargs)
    age_step = step_type(
        lambda data: Visual(f"How old are you, {data.name}?"), ask_age, name="ask age", **step_kwargs
    )
    too_old = step_type(
        lambda data: Visual(f"Welcome {data.name}, at {data.age} you can freely drink."),
        condition=is_too_old,
        name="too old",
        **step_kwargs,
    )
    too_young = step_type(
        lambda data: Visual(f"Woah {data.name}, at {data.age} you can't drink yet."),
        condition=is_too_young,
        name="too young",
        **step_kwargs,
    )

    age_node = StepNode(age_step).set_children([StepNode(too_old), StepNode(too_young)])
    return StepNode(name_step).add_child(age_node)
