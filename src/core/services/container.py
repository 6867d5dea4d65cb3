"""
Service Container
=================

Purpose
-------
Builds the document store, the event bus and every domain service, wires
them together in dependency order, and tears them down again.

Responsibilities
----------------
- Install logging (idempotent)
- Select the store backend from `Config.STORE_BACKEND`
- Attach the event bus to ConfigManager so runtime overrides are published
- Construct services: profile -> ledger -> catalog -> inventory ->
  scouting -> packs -> potm -> match
- Drain background listeners and close the store on shutdown

Non-Responsibilities
--------------------
- Game rules (services own them)
- Authentication (callers pass user ids to every operation)

Usage
-----
    container = ServiceContainer()
    await container.initialize()
    instance = await container.packs.open_pack(user_id)
    await container.shutdown()
"""

from __future__ import annotations

import random
import time
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from src.core.config.config import Config, StoreBackend
from src.core.config.manager import ConfigManager
from src.core.event.bus import EventBus
from src.core.exceptions import ConfigurationError
from src.core.logging.logger import get_logger, get_logging_health, setup_logging
from src.core.store.memory import InMemoryDocumentStore
from src.core.store.redis_store import RedisDocumentStore
from src.modules.catalog import CatalogService
from src.modules.inventory import InventoryService
from src.modules.ledger import LedgerService
from src.modules.match import MatchService
from src.modules.packs import PackService
from src.modules.potm import ElectionService
from src.modules.profile import ProfileService
from src.modules.scouting import ScoutingService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.store.base import DocumentStore

_NOT_READY = "ServiceContainer not initialized. Call initialize() first."


class ServiceContainer:
    """
    Owns one store, one event bus and one instance of every service.

    A store passed in is borrowed and left open on shutdown; a store the
    container creates itself is closed by `shutdown()`.
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] = ConfigManager,
        event_bus: Optional[EventBus] = None,
        store: Optional[DocumentStore] = None,
        logger: Optional[Logger] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._store = store
        self._owns_store = store is None
        self._logger = logger or get_logger(__name__)
        self._rng = rng
        self._clock = clock

        self._profiles: Optional[ProfileService] = None
        self._ledger: Optional[LedgerService] = None
        self._catalog: Optional[CatalogService] = None
        self._inventory: Optional[InventoryService] = None
        self._scouting: Optional[ScoutingService] = None
        self._packs: Optional[PackService] = None
        self._potm: Optional[ElectionService] = None
        self._match: Optional[MatchService] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        setup_logging()
        self._init_start = time.perf_counter()
        self._logger.info(
            "Service container initialization starting...", extra=Config.get_config_summary()
        )

        if self._event_bus is None:
            self._event_bus = EventBus(config_manager=self._config_manager)
        self._config_manager.attach_event_bus(self._event_bus)

        if self._store is None:
            self._store = await self._create_store()

        try:
            self._profiles = self._timed(
                "profile",
                lambda log: ProfileService(
                    self.store, self._config_manager, self._event_bus, log
                ),
            )
            self._ledger = self._timed(
                "ledger",
                lambda log: LedgerService(
                    self.store, self._profiles, self._config_manager, self._event_bus, log,
                    clock=self._clock,
                ),
            )
            self._catalog = self._timed(
                "catalog",
                lambda log: CatalogService(
                    self.store, self._profiles, self._config_manager, self._event_bus, log
                ),
            )
            self._inventory = self._timed(
                "inventory",
                lambda log: InventoryService(
                    self.store, self._catalog, self._config_manager, self._event_bus, log
                ),
            )
            self._scouting = self._timed(
                "scouting",
                lambda log: ScoutingService(
                    self.store, self._catalog, self._config_manager, self._event_bus, log
                ),
            )
            self._packs = self._timed(
                "packs",
                lambda log: PackService(
                    self._ledger, self._catalog, self._inventory,
                    self._config_manager, self._event_bus, log,
                    rng=self._rng, clock=self._clock,
                ),
            )
            self._potm = self._timed(
                "potm",
                lambda log: ElectionService(
                    self.store, self._profiles, self._catalog,
                    self._config_manager, self._event_bus, log,
                    clock=self._clock,
                ),
            )
            self._match = self._timed(
                "match",
                lambda log: MatchService(
                    self.store, self._ledger, self._inventory,
                    self._config_manager, self._event_bus, log,
                    clock=self._clock,
                ),
            )
        except Exception:
            self._logger.error("Service container initialization failed", exc_info=True)
            await self._close_store()
            raise

        self._initialized = True
        self._init_end = time.perf_counter()
        self._logger.info(
            "Service container initialized",
            extra={
                "service_count": len(self._service_init_times),
                "store_backend": type(self._store).__name__,
                "duration_ms": round((self._init_end - self._init_start) * 1000, 2),
            },
        )

    async def _create_store(self) -> DocumentStore:
        backend = Config.STORE_BACKEND
        if backend == StoreBackend.MEMORY.value:
            return InMemoryDocumentStore()
        if backend == StoreBackend.REDIS.value:
            return await RedisDocumentStore.connect()
        raise ConfigurationError("STORE_BACKEND", f"Unknown store backend: {backend!r}")

    def _timed(self, name: str, factory: Callable[[Logger], Any]) -> Any:
        start = time.perf_counter()
        instance = factory(get_logger(f"src.modules.{name}"))
        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        if self._event_bus is not None:
            await self._event_bus.drain()
        self._config_manager.attach_event_bus(None)
        await self._close_store()

        self._initialized = False
        self._logger.info("Service container shut down")

    async def _close_store(self) -> None:
        if self._owns_store and self._store is not None:
            await self._store.close()
            self._store = None

    async def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "store_backend": type(self._store).__name__ if self._store else None,
            "logging": asdict(get_logging_health()),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, service: Optional[Any]) -> Any:
        if not self._initialized or service is None:
            raise RuntimeError(_NOT_READY)
        return service

    @property
    def store(self) -> DocumentStore:
        if self._store is None:
            raise RuntimeError(_NOT_READY)
        return self._store

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            raise RuntimeError(_NOT_READY)
        return self._event_bus

    @property
    def profiles(self) -> ProfileService:
        return self._require(self._profiles)

    @property
    def ledger(self) -> LedgerService:
        return self._require(self._ledger)

    @property
    def catalog(self) -> CatalogService:
        return self._require(self._catalog)

    @property
    def inventory(self) -> InventoryService:
        return self._require(self._inventory)

    @property
    def scouting(self) -> ScoutingService:
        return self._require(self._scouting)

    @property
    def packs(self) -> PackService:
        return self._require(self._packs)

    @property
    def potm(self) -> ElectionService:
        return self._require(self._potm)

    @property
    def match(self) -> MatchService:
        return self._require(self._match)
