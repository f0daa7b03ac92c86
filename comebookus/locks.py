# comebookus/locks.py

import logging
import threading
from contextlib import contextmanager

from comebookus.errors import SchedulerBusy

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ProviderLocks:
    """One lock per provider id; different providers never wait on each other.

    An entry lives only while some request holds or waits on it.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[int, _Entry] = {}

    def _checkout(self, provider_id: int) -> _Entry:
        with self._guard:
            entry = self._locks.get(provider_id)
            if entry is None:
                entry = _Entry()
                self._locks[provider_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, provider_id: int, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[provider_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, provider_id: int):
        entry = self._checkout(provider_id)
        try:
            if not entry.lock.acquire(timeout=self.timeout):
                logger.warning(
                    "Timed out after %.1fs waiting for provider %s calendar", self.timeout, provider_id
                )
                raise SchedulerBusy()
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(provider_id, entry)
