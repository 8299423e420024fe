"""
KeyedLock -- one in-process writer per key.

Serializes handlers that touch the same aggregate (a school's session
creation, a session's counter, a line item's received quantity) while
letting unrelated keys proceed in parallel.  Entries are reference counted
and dropped when no thread holds or waits on them.

Cross-process safety does not come from here; the store's revision
check covers that.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLock:
    def __init__(self, name: str = "keyed"):
        self.name = name
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str) -> Generator[None, None, None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
