"""Event plumbing shared by process hosts, sessions, and the composer."""

from .bus import Event, EventBus, Subscription
from .observers import CallbackList

__all__ = ["CallbackList", "Event", "EventBus", "Subscription"]
