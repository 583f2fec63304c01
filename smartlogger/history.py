import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from smartlogger.levels import LogLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """an accepted write. timestamp is a monotonic reading, not the display time."""
    message: str
    level: LogLevel
    timestamp: float


class History:
    """bounded record of recently accepted entries, used only for duplicate detection.

    eviction, the duplicate check and insertion happen as one unit under the lock,
    so concurrent writers can never both accept the same (message, level) pair.
    """

    def __init__(self, max_count: int = 50, stale_seconds: float = 1800.0,
                 clock: Optional[Callable[[], float]] = None):
        self.max_count = max_count
        self.stale_seconds = stale_seconds
        self._clock = clock or time.monotonic
        self._entries: Deque[LogEntry] = deque()
        self._lock = threading.Lock()

    @property
    def lock(self) -> threading.Lock:
        """the lock guarding the queue. the writer also uses it for its rotation date."""
        return self._lock

    def admit(self, message: str, level: LogLevel) -> bool:
        """evicts stale/excess entries, then records the pair unless it is a duplicate.

        returns True if the entry was accepted (i.e. should be written).
        """
        with self._lock:
            now = self._clock()
            self._evict(now)

            for entry in self._entries:
                if entry.message == message and entry.level == level:
                    return False

            self._entries.append(LogEntry(message=message, level=level, timestamp=now))
            # keeps size <= max_count; with max_count == 0 nothing is retained
            while len(self._entries) > self.max_count:
                self._entries.popleft()
            return True

    def _evict(self, now: float):
        # caller holds the lock. an age equal to the window counts as stale so a
        # zero window always empties the queue
        while self._entries and (now - self._entries[0].timestamp >= self.stale_seconds
                                 or len(self._entries) > self.max_count):
            self._entries.popleft()

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> list:
        """copy of the current entries, oldest first."""
        with self._lock:
            return list(self._entries)
