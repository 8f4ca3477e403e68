"""Bounded LRU cache with per-entry expiry.

Entries are kept in an ``OrderedDict`` ordered from least to most recently
used. Expiry is absolute (``inserted_at + ttl``) and only checked when an
entry is read; capacity pressure evicts purely by recency, so a fresh but
unused entry can be dropped before a stale one that was read recently.

All operations take a single lock for their own duration only. Callers must
not hold any cache state across a resolver call.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CachePolicy:
    capacity: int = 10_000
    ttl: float = 300.0

    def __post_init__(self) -> None:
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int) or self.capacity < 1:
            raise ValueError(f"Cache capacity must be a positive integer, got {self.capacity!r}")
        if self.ttl < 0:
            raise ValueError(f"Cache TTL must not be negative, got {self.ttl!r}")


@dataclass(slots=True)
class _Entry(Generic[V]):
    value: V
    inserted_at: float


class TtlLruCache(Generic[K, V]):
    """Thread-safe LRU map whose entries expire ``ttl`` seconds after insertion."""

    def __init__(self, capacity: int, ttl: float, clock: Callable[[], float] = time.monotonic):
        policy = CachePolicy(capacity=capacity, ttl=ttl)
        self._capacity = policy.capacity
        self._ttl = float(policy.ttl)
        self._clock = clock
        self._entries: "OrderedDict[K, _Entry[V]]" = OrderedDict()
        self._lock = Lock()

    @classmethod
    def from_policy(cls, policy: CachePolicy, clock: Callable[[], float] = time.monotonic) -> "TtlLruCache[K, V]":
        return cls(policy.capacity, policy.ttl, clock=clock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl(self) -> float:
        return self._ttl

    def _expired(self, entry: _Entry[V], now: float) -> bool:
        return now >= entry.inserted_at + self._ttl

    def get(self, key: K) -> Optional[V]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, now):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: K, value: V) -> None:
        now = self._clock()
        with self._lock:
            if key in self._entries:
                self._entries[key] = _Entry(value, now)
                self._entries.move_to_end(key)
                return
            while len(self._entries) >= self._capacity:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value, now)

    def __contains__(self, key: object) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._expired(entry, now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def snapshot(self) -> Tuple[K, ...]:
        """Keys from least to most recently used, expired ones included."""
        with self._lock:
            return tuple(self._entries.keys())


__all__ = ["CachePolicy", "TtlLruCache"]
