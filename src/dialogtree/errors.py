"""Exception types for dialogtree."""

from __future__ import annotations

from typing import Any


class DialogTreeError(Exception):
    """Base exception for dialogtree."""


class ConfigurationError(DialogTreeError):
    """Base exception for configuration and tree-shape defects."""


class InvalidTreeError(ConfigurationError):
    """Raised when a node with several children has a child without a condition."""

    def __init__(self, node: Any) -> None:
        super().__init__(
            f"Invalid node found: {node!r}. Nodes with more than 1 child must have "
            "all of their children specify a condition function."
        )
        self.node = node


class Rejection(DialogTreeError):
    """Recoverable input validation failure.

    Raise it from a transform to reject the message and keep collecting. The
    message, if any, is sent back to the user as feedback.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class EndStepCollectError(DialogTreeError):
    """Raised when an end step is asked to build a collector."""
