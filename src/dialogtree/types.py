"""Collaborator contracts and shared aliases."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Message(Protocol):
    """Minimal shape of a message. Adapters may attach anything else."""

    content: str


class Channel(Protocol):
    """Anything a visual can be sent through."""

    async def send(self, visual: Any) -> Message: ...


@dataclass(frozen=True)
class Visual:
    """Default renderable payload: text plus an optional structured embed."""

    text: str = ""
    embed: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class TextMessage:
    """Plain message carrying only its content."""

    content: str


@dataclass(frozen=True)
class StoredMessage:
    """One entry of a step's message log."""

    message: Message
    from_user: bool


type MaybeAwaitable[R] = R | Awaitable[R]
type Transform[T] = Callable[[Message, T], MaybeAwaitable[T]]
type Condition[T] = Callable[[T], MaybeAwaitable[bool]]
type VisualGenerator[T] = Callable[[T], MaybeAwaitable[Any | Sequence[Any]]]


async def resolve[R](value: MaybeAwaitable[R]) -> R:
    """Await `value` if it is awaitable, return it unchanged otherwise."""
    if inspect.isawaitable(value):
        return await value
    return value
