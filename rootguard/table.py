"""
ConcurrentTable — Thread-safe mapping with striped per-key locks.

Each key hashes onto one of a fixed number of stripe locks, so operations
on unrelated keys rarely contend. Structural changes (insert, remove,
clear) additionally take a short table-wide lock so snapshots always see
a consistent dict.
"""
import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")

_DEFAULT_STRIPES = 16


class ConcurrentTable(Generic[K, V]):
    """Dict-like table safe for concurrent foreground and sweeper access."""

    def __init__(self, stripes: int = _DEFAULT_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._data: dict[K, V] = {}
        self._stripes = [threading.Lock() for _ in range(stripes)]
        self._structure = threading.Lock()

    def _stripe(self, key: K) -> threading.Lock:
        return self._stripes[hash(key) % len(self._stripes)]

    @contextmanager
    def locked(self, key: K) -> Iterator[None]:
        """Hold the lock covering ``key`` for a compound operation.

        Do not call other methods of this table for the same stripe while
        holding it; stripe locks are not re-entrant.
        """
        with self._stripe(key):
            yield

    def get(self, key: K) -> Optional[V]:
        with self._structure:
            return self._data.get(key)

    def insert(self, key: K, value: V) -> bool:
        """Insert ``value`` if ``key`` is absent. Returns whether it was added."""
        with self._stripe(key), self._structure:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def pop(self, key: K) -> Optional[V]:
        with self._stripe(key), self._structure:
            return self._data.pop(key, None)

    def pop_if(self, key: K, predicate: Callable[[V], bool]) -> Optional[V]:
        """Remove and return the entry only if ``predicate(value)`` holds."""
        with self._stripe(key):
            with self._structure:
                value = self._data.get(key)
            if value is None or not predicate(value):
                return None
            with self._structure:
                return self._data.pop(key, None)

    def update(self, key: K, fn: Callable[[V], bool]) -> Optional[V]:
        """Run ``fn`` on the entry under its stripe lock.

        ``fn`` returns ``True`` to keep the entry or ``False`` to drop it.

        Returns:
            The value if it was kept, otherwise ``None``.
        """
        with self._stripe(key):
            with self._structure:
                value = self._data.get(key)
            if value is None:
                return None
            if fn(value):
                return value
            with self._structure:
                self._data.pop(key, None)
            return None

    def keys(self) -> list[K]:
        with self._structure:
            return list(self._data.keys())

    def values(self) -> list[V]:
        with self._structure:
            return list(self._data.values())

    def items(self) -> list[tuple[K, V]]:
        with self._structure:
            return list(self._data.items())

    def drain(self) -> list[tuple[K, V]]:
        """Remove every entry and return them."""
        with self._structure:
            items = list(self._data.items())
            self._data.clear()
        return items

    def __contains__(self, key: object) -> bool:
        with self._structure:
            return key in self._data

    def __len__(self) -> int:
        with self._structure:
            return len(self._data)
