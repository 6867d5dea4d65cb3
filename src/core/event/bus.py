"""
EventBus: async pub/sub with tiered listener execution.

Services publish domain events (`pack.opened`, `potm.round_ended`,
`ledger.adjusted`, ...) without knowing who reacts to them.

Tiers
-----
- CRITICAL, HIGH: one at a time, awaited, each under a timeout
- NORMAL: gathered concurrently, awaited
- LOW: background tasks; `drain()` waits for them

A listener that raises or times out is logged and counted; the publisher
never sees the error. Timeouts come from ConfigManager
(`core.event.listener_timeout.critical_seconds` / `.high_seconds`) unless
passed explicitly. Sync callbacks run in the default executor.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter
from typing import Any, Optional

from src.core.config.manager import ConfigManager
from src.core.event.registry import ListenerRegistry
from src.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from src.core.exceptions import EventBusError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 5.0
_SEQUENTIAL_TIERS = (ListenerPriority.CRITICAL, ListenerPriority.HIGH)


def _accepts_single_payload(callback: CallbackType) -> bool:
    try:
        parameters = inspect.signature(callback).parameters
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are taken on trust
        return True
    return len(parameters) == 1


class EventBus:
    """
    >>> bus = EventBus()
    >>> bus.subscribe("pack.opened", on_pack_opened, priority=ListenerPriority.HIGH)
    >>> await bus.publish("pack.opened", {"user_id": "u_1", "instance_id": "p_..."})
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        config_manager: Optional[type[ConfigManager]] = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._registry = registry or ListenerRegistry()
        self._pending: set[asyncio.Task[Any]] = set()
        self._published: Counter[str] = Counter()
        self._failures: Counter[str] = Counter()

        self._timeouts = {
            ListenerPriority.CRITICAL: self._resolve_timeout(
                config_manager, "critical_seconds", critical_timeout_seconds
            ),
            ListenerPriority.HIGH: self._resolve_timeout(
                config_manager, "high_seconds", high_timeout_seconds
            ),
        }
        logger.debug(
            "EventBus ready",
            extra={tier.name.lower() + "_timeout": t for tier, t in self._timeouts.items()},
        )

    @staticmethod
    def _resolve_timeout(
        config_manager: Optional[type[ConfigManager]], name: str, explicit: Optional[float]
    ) -> float:
        if explicit is not None:
            return float(explicit)
        if config_manager is None:
            return _DEFAULT_TIMEOUT_SECONDS

        key = f"core.event.listener_timeout.{name}"
        raw = config_manager.get(key, _DEFAULT_TIMEOUT_SECONDS)
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring non-numeric listener timeout",
                extra={"config_key": key, "value": raw},
            )
            return _DEFAULT_TIMEOUT_SECONDS

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Register `callback` for an event name or wildcard pattern.

        Returns the listener id to pass to `unsubscribe`. Re-subscribing an
        id that is already registered is a logged no-op.

        Raises:
            EventBusError: Empty event name, or a callback that does not
                take exactly one argument
        """
        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        try:
            if not _accepts_single_payload(callback):
                name = getattr(callback, "__qualname__", repr(callback))
                raise ValueError(f"listener '{name}' must take exactly one payload argument")
            added = self._registry.add_listener(event_name, listener, allow_duplicates)
        except ValueError as exc:
            raise EventBusError("subscribe", event_name, exc) from exc

        if not added:
            logger.warning(
                "Listener already subscribed",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        return self._registry.remove_listener(event_name, identifier)

    def clear_all_listeners(self) -> int:
        return self._registry.clear_all()

    # ------------------------------------------------------------------ #
    # Publish
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Deliver `data` to every listener matching `event_name`.

        Returns the results of the awaited tiers in execution order; LOW
        listeners contribute nothing.
        """
        self._published[event_name] += 1
        listeners = self._registry.extract_listeners_for_event(event_name)
        if not listeners:
            return []

        by_tier: dict[ListenerPriority, list[EventListener]] = {tier: [] for tier in ListenerPriority}
        for listener in listeners:
            by_tier[listener.priority].append(listener)

        results: list[Any] = []
        for tier in _SEQUENTIAL_TIERS:
            for listener in by_tier[tier]:
                results.append(await self._invoke_bounded(listener, event_name, data))

        if by_tier[ListenerPriority.NORMAL]:
            results.extend(
                await asyncio.gather(
                    *(self._invoke(lst, event_name, data) for lst in by_tier[ListenerPriority.NORMAL])
                )
            )

        for listener in by_tier[ListenerPriority.LOW]:
            task = asyncio.create_task(
                self._invoke(listener, event_name, data),
                name=f"event:{event_name}:{listener.identifier}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return results

    async def _invoke_bounded(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        timeout = self._timeouts[listener.priority]
        if timeout <= 0:
            return await self._invoke(listener, event_name, payload)
        try:
            return await asyncio.wait_for(self._invoke(listener, event_name, payload), timeout)
        except asyncio.TimeoutError as exc:
            self._count_failure(event_name, listener, exc)
            return None

    async def _invoke(self, listener: EventListener, event_name: str, payload: EventPayload) -> Any:
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)
            return await asyncio.get_running_loop().run_in_executor(
                None, listener.callback, payload
            )
        except Exception as exc:
            self._count_failure(event_name, listener, exc)
            return None

    def _count_failure(self, event_name: str, listener: EventListener, exc: BaseException) -> None:
        self._failures[event_name] += 1
        timed_out = isinstance(exc, asyncio.TimeoutError)
        logger.error(
            "Listener timed out" if timed_out else "Listener failed",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "error_type": type(exc).__name__,
            },
            exc_info=not timed_out,
        )

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    async def drain(self) -> None:
        """Wait for outstanding LOW-tier listeners."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_metrics_summary(self) -> dict[str, Any]:
        published = sum(self._published.values())
        failed = sum(self._failures.values())
        return {
            "total_events_published": published,
            "events_by_type": dict(self._published),
            "total_errors": failed,
            "errors_by_event": dict(self._failures),
            "total_listeners": self._registry.get_total_listener_count(),
        }

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    def get_background_task_count(self) -> int:
        return len(self._pending)
