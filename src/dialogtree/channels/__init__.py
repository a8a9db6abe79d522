"""Channel adapters: an in-process bus and the terminal."""

from dialogtree.channels.bus import BusChannel, BusCollector, BusStep, MessageBus
from dialogtree.channels.events import InboundMessage, OutboundMessage

__all__ = [
    "BusChannel",
    "BusCollector",
    "BusStep",
    "InboundMessage",
    "MessageBus",
    "OutboundMessage",
]
