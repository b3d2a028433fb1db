"""
Time-windowed rolling buffers for detector samples.

The sampling tick appends while the analysis tick snapshots and prunes, so
every operation takes the buffer lock and snapshots are copies. Windows are
measured from the newest sample's own timestamp rather than wall-clock time,
which keeps replays of recorded sessions deterministic.
"""

import logging
import threading
from typing import Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RollingBuffer(Generic[T]):
    """
    Append-only sample buffer pruned to a fixed time window.

    Samples must expose an integer `timestamp` attribute (milliseconds).

    Usage:
        buffer = RollingBuffer(window_ms=3000, name='face')
        buffer.append(sample)
        recent = buffer.snapshot_and_prune()
    """

    def __init__(self, window_ms: float, name: str = 'buffer'):
        self.window_ms = window_ms
        self.name = name
        self._samples: List[T] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: T) -> None:
        with self._lock:
            self._samples.append(sample)

    def snapshot(self) -> List[T]:
        """Copy of the buffered samples in arrival order."""
        with self._lock:
            return list(self._samples)

    def snapshot_and_prune(self) -> List[T]:
        """Prune, then return a copy of what remains (one atomic step)."""
        with self._lock:
            self._prune_locked()
            return list(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples = []

    @property
    def newest_timestamp(self) -> Optional[int]:
        with self._lock:
            if not self._samples:
                return None
            return max(s.timestamp for s in self._samples)

    def _prune_locked(self) -> int:
        if not self._samples:
            return 0

        newest = max(s.timestamp for s in self._samples)
        window_start = newest - self.window_ms
        before = len(self._samples)
        self._samples = [s for s in self._samples if s.timestamp > window_start]

        removed = before - len(self._samples)
        if removed:
            logger.debug(f"{self.name} buffer: pruned {removed} samples older than {window_start}")
        return removed
