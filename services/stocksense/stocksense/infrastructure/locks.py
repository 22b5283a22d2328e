"""Mutual exclusion keyed by item code.

The read-check-write sequence of a stock mutation must not interleave with
another one for the same item. Different codes never contend.
"""

import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Dict, Iterator


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class ItemLockRegistry:
    """One lock per item code, created on demand and dropped when idle."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, code: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(code)
            if entry is None:
                entry = self._entries[code] = _Entry()
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[code]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._entries)


@lru_cache
def get_lock_registry() -> ItemLockRegistry:
    return ItemLockRegistry()
