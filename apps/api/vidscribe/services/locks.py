"""Per-video mutual exclusion for transcription state writes."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import threading


@dataclass(slots=True)
class _LockEntry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0


class VideoLocks:
    """Serializes start, retry, cancel and terminal poll writes for one video.

    A video's lock exists only while some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, video_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(video_id)
            if entry is None:
                entry = self._locks[video_id] = _LockEntry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[video_id]
