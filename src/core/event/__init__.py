"""
Event system for Ultimate Manager.

Domain services publish state changes through an `EventBus` instance owned
by the service container; nothing here is a global singleton.
"""

from .bus import EventBus
from .registry import ListenerRegistry, matches
from .types import CallbackType, EventListener, EventPayload, ListenerPriority

__all__ = [
    "EventBus",
    "ListenerRegistry",
    "matches",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
