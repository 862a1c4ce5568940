import threading
from contextlib import contextmanager


class VentureLocks:
    """Process-local registry of one lock per venture.

    Turns for the same venture must run one after another so every merge
    starts from the previous turn's committed graph. Create one registry per
    process and pass it to whatever runs turns.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _get(self, venture_id: str) -> threading.Lock:
        with self._lock:
            if venture_id not in self._locks:
                self._locks[venture_id] = threading.Lock()
            return self._locks[venture_id]

    @contextmanager
    def hold(self, venture_id: str):
        lock = self._get(venture_id)
        with lock:
            yield

    def discard(self, venture_id: str) -> None:
        with self._lock:
            self._locks.pop(venture_id, None)

    def clear(self) -> None:
        with self._lock:
            self._locks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._locks)
