"""In-process lock registries keyed by aggregate identity."""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager


class KeyedLocks:
    """One lock per key, created on first use.

    ``hold`` acquires the locks for several keys in sorted order so that two
    callers locking overlapping key sets can never deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable) -> Iterator[None]:
        acquired = []
        try:
            for key in sorted({str(k) for k in keys}):
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class InFlightRegistry:
    """Tracks which keys have an operation running right now.

    ``claim`` never blocks: it returns False when the key is already taken.
    Keys are forgotten on ``release``, so the registry only ever holds the
    keys currently in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._in_flight: set[str] = set()

    def claim(self, key) -> bool:
        with self._guard:
            if str(key) in self._in_flight:
                return False
            self._in_flight.add(str(key))
            return True

    def release(self, key) -> None:
        with self._guard:
            self._in_flight.discard(str(key))

    def is_in_flight(self, key) -> bool:
        with self._guard:
            return str(key) in self._in_flight
