"""
Key-Value Store.

The storage seam under the session and report state. Everything above this
module only needs get/set/delete, so the in-process maps here can be swapped
for a distributed cache or a test double without touching engine logic.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class KeyValueStore(ABC, Generic[V]):
    """
    Defines how state is stored and retrieved by key.
    """

    @abstractmethod
    def get(self, key: Hashable) -> Optional[V]:
        """Returns the value for key, or None."""
        pass

    @abstractmethod
    def set(self, key: Hashable, value: V):
        """Stores value under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: Hashable) -> bool:
        """Deletes key. Returns True if found and deleted."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemoryKeyValueStore(KeyValueStore[V]):
    """
    Dictionary storage with an optional idle timeout.

    Entries not read or written for `idle_timeout` seconds are dropped by
    `sweep()`, which also runs opportunistically on writes at most once per
    `sweep_interval`.
    """

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store: Dict[Hashable, Tuple[V, float]] = {}
        self._idle_timeout = idle_timeout
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._last_sweep = clock()

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._store.get(key)
        if entry is None:
            return None

        value, touched = entry
        now = self._clock()
        if self._expired(touched, now):
            del self._store[key]
            return None

        self._store[key] = (value, now)
        return value

    def set(self, key: Hashable, value: V):
        now = self._clock()
        self._store[key] = (value, now)
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()

    def delete(self, key: Hashable) -> bool:
        if key in self._store:
            del self._store[key]
            return True
        return False

    def sweep(self) -> int:
        """Drops idle entries. Returns how many were removed."""
        now = self._clock()
        self._last_sweep = now
        if self._idle_timeout is None:
            return 0

        stale = [k for k, (_, touched) in self._store.items() if self._expired(touched, now)]
        for key in stale:
            del self._store[key]

        if stale:
            logger.debug(f"Swept {len(stale)} idle entries")
        return len(stale)

    def _expired(self, touched: float, now: float) -> bool:
        return self._idle_timeout is not None and now - touched > self._idle_timeout

    def __len__(self) -> int:
        return len(self._store)


class LRUKeyValueStore(KeyValueStore[V]):
    """
    Bounded storage evicting the least recently used entry when full.
    """

    def __init__(self, max_entries: int):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        # OrderedDict for LRU ordering
        self._store: "OrderedDict[Hashable, Any]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[V]:
        if key not in self._store:
            return None

        # Move to end (most recently used)
        self._store.move_to_end(key)
        return self._store[key]

    def set(self, key: Hashable, value: V):
        self._store[key] = value
        self._store.move_to_end(key)

        while len(self._store) > self._max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.debug(f"Evicted least recently used entry {evicted!r}")

    def delete(self, key: Hashable) -> bool:
        if key in self._store:
            del self._store[key]
            return True
        return False

    def __len__(self) -> int:
        return len(self._store)
