# vaccine_registry/services/locks.py

import threading
from contextlib import contextmanager


class InventoryLocks:
    """One lock per vaccine id.

    draw_dose reads and then writes; two interleaved draws for the same
    vaccine could both open a sealed vial. Hold for_vaccine() around every
    draw and every per-vaccine sweep.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, vaccine_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(vaccine_id)
            if lock is None:
                lock = self._locks[vaccine_id] = threading.Lock()
            return lock

    @contextmanager
    def for_vaccine(self, vaccine_id: int):
        lock = self._lock_for(vaccine_id)
        with lock:
            yield


# Process-wide registry shared by the API and the sweep job
inventory_locks = InventoryLocks()
