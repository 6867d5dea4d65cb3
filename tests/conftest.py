"""
Pytest Configuration and Fixtures for Ultimate Manager Tests
============================================================

Purpose
-------
Shared fixtures for the test suite: a fresh in-memory store, event bus and
service container per test, a controllable clock, a seeded random source,
and small factories for users and catalog entries.

Architecture Notes
------------------
- Unit tests run against InMemoryDocumentStore (fast, isolated)
- Integration tests use testcontainers (real Redis) and are skipped when
  Docker is not reachable
- ConfigManager is a class-level singleton; it is reset around every test
"""

from __future__ import annotations

import os
import random
from collections import defaultdict
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.event.bus import EventBus
from src.core.logging.logger import clear_log_context, get_logger, shutdown_logging
from src.core.services.container import ServiceContainer
from src.core.store.memory import InMemoryDocumentStore
from src.modules.catalog.service import CATALOG_COLLECTION
from src.modules.profile.service import USERS_COLLECTION

logger = get_logger(__name__)

# A fixed epoch second (2024-06-01T12:00:00Z) so ids and timestamps are stable.
START_TIME = 1_717_243_200.0


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("STORE_BACKEND", "memory")
    Config.load()


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Every test starts from the built-in defaults plus config/*.yaml."""
    ConfigManager.reset()
    ConfigManager.initialize()
    yield
    ConfigManager.reset()


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach the queue handler a container may have installed."""
    yield
    shutdown_logging()
    clear_log_context()


# ============================================================================
# TIME / RANDOMNESS
# ============================================================================


class FakeClock:
    """Callable clock returning epoch seconds; tests move it explicitly."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20240601)


# ============================================================================
# INFRASTRUCTURE
# ============================================================================


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[InMemoryDocumentStore, None]:
    memory_store = InMemoryDocumentStore()
    yield memory_store
    await memory_store.close()


@pytest_asyncio.fixture
async def event_bus() -> AsyncGenerator[EventBus, None]:
    bus = EventBus(config_manager=ConfigManager)
    yield bus
    await bus.drain()
    bus.clear_all_listeners()


@pytest_asyncio.fixture
async def container(
    store: InMemoryDocumentStore,
    event_bus: EventBus,
    rng: random.Random,
    clock: FakeClock,
) -> AsyncGenerator[ServiceContainer, None]:
    services = ServiceContainer(store=store, event_bus=event_bus, rng=rng, clock=clock)
    await services.initialize()
    yield services
    await services.shutdown()


class EventRecorder:
    """Collects payloads published on the bus, keyed by event name."""

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self.payloads: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    def listen(self, *event_names: str) -> "EventRecorder":
        for name in event_names:
            self._bus.subscribe(name, self._recorder_for(name), identifier=f"recorder:{name}")
        return self

    def _recorder_for(self, name: str):
        async def _record(payload):
            self.payloads[name].append(payload)

        return _record


@pytest.fixture
def events(event_bus: EventBus) -> EventRecorder:
    return EventRecorder(event_bus)


# ============================================================================
# DATA FACTORIES
# ============================================================================


def outfield_stats(value: int = 70) -> Dict[str, int]:
    return {attr: value for attr in ("PAC", "SHO", "PAS", "DRI", "DEF", "PHY")}


def goalkeeper_stats(value: int = 70) -> Dict[str, int]:
    return {attr: value for attr in ("DIV", "HAN", "KIC", "REF", "SPE", "POS")}


def catalog_document(
    entry_id: str,
    rating: int,
    position: str = "ST",
    name: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """A catalog entry document as stored under `players/{entry_id}`."""
    stats = goalkeeper_stats(rating) if position == "GK" else outfield_stats(rating)
    document = {
        "id": entry_id,
        "name": name or entry_id.title(),
        "position": position,
        "rating": rating,
        "stats": stats,
        "cardType": "gold",
        "ratingMode": "manual",
        "votes": {},
        "gameStats": {"played": 0, "won": 0, "goals": 0, "assists": 0, "cleanSheets": 0},
    }
    document.update(extra)
    return document


async def seed_catalog(store, *documents: Dict[str, Any]) -> None:
    for document in documents:
        await store.set_document(CATALOG_COLLECTION, document["id"], document)


async def seed_user(
    services: ServiceContainer,
    user_id: str,
    currency: float = 0,
    admin: bool = False,
    linked_entity_id: Optional[str] = None,
) -> None:
    """Create a profile, then apply role, balance and entity link as asked."""
    await services.profiles.ensure_profile(user_id, display_name=user_id)
    if admin:
        await services.store.update_document(USERS_COLLECTION, user_id, {"role": "admin"})
    if currency:
        await services.ledger.adjust_balance(user_id, currency, reason="test_seed")
    if linked_entity_id is not None:
        await services.profiles.link_entity(user_id, linked_entity_id)
