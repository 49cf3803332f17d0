"""Bounded, key-ordered collection shared by every history store."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar


V = TypeVar("V")


class RetentionWindow(Generic[V]):
    """Fixed-capacity mapping from integer run keys to values, oldest first.

    Inserting beyond capacity evicts the smallest keys. Re-inserting an
    existing key replaces its value in place and never grows the window.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._keys: list[int] = []
        self._values: dict[int, V] = {}

    @classmethod
    def from_items(
        cls, capacity: int, items: Iterable[tuple[int, V]]
    ) -> tuple[RetentionWindow[V], list[tuple[int, V]]]:
        """Load existing items, returning the window and anything already over capacity."""
        window: RetentionWindow[V] = cls(capacity)
        for key, value in items:
            window._insert(key, value)
        return window, window._evict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def put(self, key: int, value: V) -> list[tuple[int, V]]:
        """Insert or replace ``key`` and return the evicted ``(key, value)`` pairs.

        When the window is full and ``key`` is older than everything retained,
        the new pair itself is the one evicted.
        """
        self._insert(key, value)
        return self._evict()

    def _insert(self, key: int, value: V) -> None:
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = value

    def _evict(self) -> list[tuple[int, V]]:
        overflow = len(self._keys) - self._capacity
        if overflow <= 0:
            return []
        evicted_keys, self._keys = self._keys[:overflow], self._keys[overflow:]
        return [(key, self._values.pop(key)) for key in evicted_keys]

    def keys(self) -> list[int]:
        return list(self._keys)

    def values(self) -> list[V]:
        return [self._values[key] for key in self._keys]

    def items(self) -> list[tuple[int, V]]:
        return [(key, self._values[key]) for key in self._keys]

    @property
    def oldest(self) -> int | None:
        return self._keys[0] if self._keys else None

    @property
    def newest(self) -> int | None:
        return self._keys[-1] if self._keys else None

    def __getitem__(self, key: int) -> V:
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._keys))

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"RetentionWindow(capacity={self._capacity}, keys={self._keys!r})"
