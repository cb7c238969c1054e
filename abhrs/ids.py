"""
Identifier allocation for credentials, commitments, signatures and decoys.

Ids only have to be globally unique, never ordered, so a counter behind a
lock is enough for concurrent callers.  One allocator is created per
process (or per test run) and injected wherever ids are minted.
"""

from __future__ import annotations

import itertools
import threading


class IdAllocator:
    """Thread-safe ``<prefix>_<n>`` id sequence."""

    def __init__(self, namespace: str = "") -> None:
        self._namespace = namespace
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next(self, prefix: str = "id") -> str:
        with self._lock:
            n = next(self._counter)
        if self._namespace:
            return f"{self._namespace}:{prefix}_{n}"
        return f"{prefix}_{n}"

    @property
    def namespace(self) -> str:
        return self._namespace

    def __repr__(self) -> str:
        return f"IdAllocator(namespace={self._namespace!r})"
