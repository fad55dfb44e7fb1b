# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Per-key reader/writer locks.

Summary
-------
Each user's graph is guarded by its own :class:`ReadWriteLock`: any number
of readers may hold it together, a writer holds it alone. Waiting writers
block new readers so a steady stream of queries cannot starve an ingest
batch. Locks for different keys are independent.

Examples
--------
>>> registry = LockRegistry()
>>> with registry.read("u1"):
...     pass
>>> len(registry)
0
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ReadWriteLock:
    """Many-readers / single-writer lock with writer preference."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read without matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write without matching acquire_write")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""

        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""

        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class LockRegistry:
    """One :class:`ReadWriteLock` per key, held only while in use.

    A key's lock is created when the first caller checks it out and dropped
    when the last one checks it back in, so the registry does not grow with
    every user ever seen.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, ReadWriteLock] = {}
        self._users: Dict[str, int] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: str) -> ReadWriteLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = ReadWriteLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            left = self._users[key] - 1
            if left:
                self._users[key] = left
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def read(self, key: str) -> Iterator[None]:
        """Hold ``key``'s lock shared for the duration of the block."""

        lock = self._checkout(key)
        try:
            with lock.read():
                yield
        finally:
            self._checkin(key)

    @contextmanager
    def write(self, key: str) -> Iterator[None]:
        """Hold ``key``'s lock exclusively for the duration of the block."""

        lock = self._checkout(key)
        try:
            with lock.write():
                yield
        finally:
            self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["ReadWriteLock", "LockRegistry"]
