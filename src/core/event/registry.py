"""
Listener storage and wildcard routing for the EventBus.

Exact event names and wildcard patterns ("pack.*", "*.removed", "*") are
kept in separate maps. Retrieval merges both, prunes one-shot listeners and
returns a deterministic order of (priority, identifier).
"""

from __future__ import annotations

from collections import defaultdict
from fnmatch import fnmatchcase

from src.core.event.types import EventListener


def matches(event_name: str, pattern: str) -> bool:
    """
    Case-sensitive wildcard match.

    >>> matches("pack.opened", "pack.*")
    True
    >>> matches("pack.opened", "potm.*")
    False
    """
    if pattern == "*":
        return True
    if "*" not in pattern:
        return event_name == pattern
    return fnmatchcase(event_name, pattern)


class ListenerRegistry:
    """Registry of exact and wildcard listeners."""

    def __init__(self) -> None:
        self._exact: dict[str, list[EventListener]] = defaultdict(list)
        self._wildcard: dict[str, list[EventListener]] = defaultdict(list)

    def _bucket(self, event_name: str) -> dict[str, list[EventListener]]:
        return self._wildcard if "*" in event_name else self._exact

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        allow_duplicates: bool = False,
    ) -> bool:
        """Register a listener; returns False when a duplicate id was refused."""
        if not event_name:
            raise ValueError("event_name must be a non-empty string")

        listeners = self._bucket(event_name)[event_name]
        if not allow_duplicates and any(
            existing.identifier == listener.identifier for existing in listeners
        ):
            return False

        listeners.append(listener)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        bucket = self._bucket(event_name)
        listeners = bucket.get(event_name)
        if not listeners:
            return False

        remaining = [lst for lst in listeners if lst.identifier != identifier]
        if len(remaining) == len(listeners):
            return False

        if remaining:
            bucket[event_name] = remaining
        else:
            del bucket[event_name]
        return True

    def clear_all(self) -> int:
        count = self.get_total_listener_count()
        self._exact.clear()
        self._wildcard.clear()
        return count

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        """
        Collect every listener that should receive `event_name`.

        One-shot listeners are removed from the registry as part of the
        same call so a second publish can never run them again.
        """
        collected: list[EventListener] = []

        exact = self._exact.get(event_name)
        if exact:
            collected.extend(exact)
            kept = [lst for lst in exact if not lst.once]
            if kept:
                self._exact[event_name] = kept
            else:
                del self._exact[event_name]

        for pattern in list(self._wildcard.keys()):
            if not matches(event_name, pattern):
                continue
            listeners = self._wildcard[pattern]
            collected.extend(listeners)
            kept = [lst for lst in listeners if not lst.once]
            if kept:
                self._wildcard[pattern] = kept
            else:
                del self._wildcard[pattern]

        collected.sort(key=lambda lst: (lst.priority.value, lst.identifier))
        return collected

    def get_listener_count_for_event(self, event_name: str) -> int:
        count = len(self._exact.get(event_name, []))
        for pattern, listeners in self._wildcard.items():
            if matches(event_name, pattern):
                count += len(listeners)
        return count

    def get_total_listener_count(self) -> int:
        return sum(len(v) for v in self._exact.values()) + sum(
            len(v) for v in self._wildcard.values()
        )
