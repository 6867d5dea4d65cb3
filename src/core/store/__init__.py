"""
Document store port and adapters.

- **base.py**: `DocumentStore` protocol, `Increment`, `Subscription`
- **memory.py**: `InMemoryDocumentStore` (default and test backend)
- **redis_store.py**: `RedisDocumentStore` (redis.asyncio)
"""

from src.core.store.base import DocumentStore, Increment, Subscription
from src.core.store.memory import InMemoryDocumentStore
from src.core.store.redis_store import RedisDocumentStore

__all__ = [
    "DocumentStore",
    "Increment",
    "Subscription",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
]
