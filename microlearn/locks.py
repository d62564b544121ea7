"""Per-key mutual exclusion for attempt processing."""

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLocks:
    """
    Registry of one threading.Lock per key.

    Attempts for the same (user, topic) are serialized; different keys never
    contend. Locks are created lazily and only live while some thread holds
    or waits on them, so idle keys do not accumulate.
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.Lock]" = weakref.WeakValueDictionary()

    def _get(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._get(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
