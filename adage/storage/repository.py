"""
Keyed repositories for engine-owned entities.

Trackers, patterns and A/B tests are held in repositories injected into each
component instead of process-wide maps. The in-memory implementation is the
default; hosts can supply any object implementing the Repository interface.

Each repository also hands out one re-entrant lock per entity id, so that
mutations of one entity never block unrelated entities.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Storage abstraction keyed by entity id."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[T]:
        """Return the entity stored under ``entity_id`` or None."""

    @abstractmethod
    def put(self, entity_id: str, entity: T) -> None:
        """Store ``entity`` under ``entity_id``, replacing any previous value."""

    @abstractmethod
    def list(self) -> List[T]:
        """Return a snapshot of all stored entities."""

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Remove an entity. Returns False if it was not present."""

    @abstractmethod
    def locked(self, entity_id: str):
        """Context manager holding the exclusive lock for ``entity_id``."""

    @abstractmethod
    def ids(self) -> List[str]:
        """Return the ids of all stored entities."""

    def get_or_create(self, entity_id: str, factory: Callable[[], T]) -> T:
        """
        Return the entity for ``entity_id``, creating it with ``factory`` if absent.

        Creation happens under the entity lock so concurrent callers observe
        a single instance.
        """
        with self.locked(entity_id):
            entity = self.get(entity_id)
            if entity is None:
                entity = factory()
                self.put(entity_id, entity)
            return entity

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self.get(entity_id) is not None

    def __len__(self) -> int:
        return len(self.list())


class InMemoryRepository(Repository[T]):
    """
    Dictionary-backed repository with an id -> lock arena.

    The registry lock only guards the dictionaries themselves and is never
    held while caller code runs under an entity lock.
    """

    def __init__(self, name: str = "repository"):
        """
        Initialize the repository.

        Args:
            name: Label used in log messages
        """
        self.name = name
        self._entities: Dict[str, T] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

        logger.debug(f"Initialized InMemoryRepository '{name}'")

    def get(self, entity_id: str) -> Optional[T]:
        with self._registry_lock:
            return self._entities.get(entity_id)

    def put(self, entity_id: str, entity: T) -> None:
        with self._registry_lock:
            self._entities[entity_id] = entity

    def list(self) -> List[T]:
        with self._registry_lock:
            return list(self._entities.values())

    def ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._entities.keys())

    def delete(self, entity_id: str) -> bool:
        with self._registry_lock:
            lock = self._locks.get(entity_id)
            # Drop the lock entry unless another thread holds it
            if lock is not None and lock.acquire(blocking=False):
                try:
                    del self._locks[entity_id]
                finally:
                    lock.release()

            if entity_id not in self._entities:
                return False
            del self._entities[entity_id]
            return True

    def _lock_for(self, entity_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(entity_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[entity_id] = lock
            return lock

    @contextmanager
    def locked(self, entity_id: str) -> Iterator[None]:
        lock = self._lock_for(entity_id)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entities)
