import threading
from contextlib import contextmanager


class KeyedLock:
    """Mutual exclusion per key (e.g. a gateway reference) within one process.

    Entries are reference counted and dropped once nobody holds or waits on
    them, so the registry only ever contains keys that are in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self):
        with self._guard:
            return len(self._locks)
