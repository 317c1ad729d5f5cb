"""Live subscription primitives."""

from .feed import ChangeFeed, Subscription
from .queue import EventQueue

__all__ = ["ChangeFeed", "EventQueue", "Subscription"]
