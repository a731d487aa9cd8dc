from __future__ import annotations

import threading
import weakref
from pathlib import Path


class PathLock:
    """A lock bound to one document or directory path."""

    def __init__(self, key: str) -> None:
        self.key = key
        self._lock = threading.Lock()

    def __enter__(self) -> "PathLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


class PathLockRegistry:
    """
    Hands every caller working on the same resolved path the same PathLock.

    Entries are weak: once no write worker, delete or create holds a path's lock, the entry
    drops out, so scanning or writing many documents does not grow the registry.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, PathLock] = weakref.WeakValueDictionary()

    def lock_for(self, path: Path) -> PathLock:
        key = str(path.resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = PathLock(key)
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


GLOBAL_PATH_LOCKS = PathLockRegistry()
