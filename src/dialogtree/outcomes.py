"""Tagged outcomes of one collection attempt, and the result of a step."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from dialogtree.errors import Rejection
from dialogtree.types import Message


@dataclass(frozen=True)
class Accept[T]:
    message: Message
    data: T


@dataclass(frozen=True)
class Reject:
    message: Message
    error: Rejection


@dataclass(frozen=True)
class Exit:
    message: Message | None = None


@dataclass(frozen=True)
class Inactivity:
    pass


@dataclass(frozen=True)
class Failure:
    error: Exception
    message: Message | None = None


type Outcome[T] = Accept[T] | Reject | Exit | Inactivity | Failure


class Ending(StrEnum):
    """How a step's collection ended."""

    SKIPPED = "skipped"  # no transform, nothing collected
    ACCEPTED = "accepted"
    EXITED = "exited"
    INACTIVE = "inactive"
    ENDED = "ended"  # end step shown, nothing collected


@dataclass(frozen=True)
class StepResult[T]:
    """Data handed back by a step, and whether the tree ends here."""

    data: T
    ending: Ending = Ending.ACCEPTED

    @property
    def terminate(self) -> bool:
        return self.ending in (Ending.EXITED, Ending.INACTIVE)
