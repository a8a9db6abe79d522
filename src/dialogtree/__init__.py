"""dialogtree - conversation trees, one turn at a time."""

from .collector import Collector, CollectorFailed, ExitRequested, QueueCollector, Received
from .config import FlowSettings, get_settings
from .errors import ConfigurationError, DialogTreeError, EndStepCollectError, InvalidTreeError, Rejection
from .node import StepNode
from .outcomes import Ending, StepResult
from .runner import Runner
from .step import EndStep, Step
from .tree import TreeNode
from .types import Channel, Message, StoredMessage, TextMessage, Visual

__version__ = "0.1.0"

__all__ = [
    "Channel",
    "Collector",
    "CollectorFailed",
    "ConfigurationError",
    "DialogTreeError",
    "EndStep",
    "EndStepCollectError",
    "Ending",
    "ExitRequested",
    "FlowSettings",
    "InvalidTreeError",
    "Message",
    "QueueCollector",
    "Received",
    "Rejection",
    "Runner",
    "Step",
    "StepNode",
    "StepResult",
    "StoredMessage",
    "TextMessage",
    "TreeNode",
    "Visual",
    "get_settings",
]
