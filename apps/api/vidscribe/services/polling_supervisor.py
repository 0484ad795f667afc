"""Background progress polling, one cancellable task per video."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
import logging

from vidscribe.core.logging_safety import safe_log_identifier
from vidscribe.errors import TransportError
from vidscribe.schemas.video import ProgressSnapshot, TranscriptionStatus, WatchState

logger = logging.getLogger(__name__)

STALE_PROGRESS_MESSAGE = (
    "Transcription is taking longer than expected; cancel it or retry after it fails."
)
_FINAL_STATUSES = frozenset(
    {
        TranscriptionStatus.NOT_STARTED,
        TranscriptionStatus.COMPLETED,
        TranscriptionStatus.FAILED,
    }
)


@dataclass(slots=True)
class _Watch:
    task: asyncio.Task
    stop_event: asyncio.Event
    loop: asyncio.AbstractEventLoop
    last_snapshot: ProgressSnapshot | None = None
    last_error: str | None = None


class PollingSupervisor:
    """Drives ``check_progress`` on a fixed interval until a terminal state.

    Transport failures are logged and retried on the next tick. Any other
    failure ends the watch and is reported through ``state``. A watch that
    outlives ``timeout_seconds`` stops and leaves the video untouched. Only
    the most recent ``max_outcomes`` finished watches are kept for ``state``.
    """

    def __init__(
        self,
        check_progress: Callable[[str], ProgressSnapshot],
        *,
        interval_seconds: float,
        timeout_seconds: float,
        max_outcomes: int = 1024,
    ) -> None:
        self._check_progress = check_progress
        self._interval_seconds = interval_seconds
        self._timeout_seconds = timeout_seconds
        self._max_outcomes = max_outcomes
        self._watches: dict[str, _Watch] = {}
        self._outcomes: dict[str, WatchState] = {}

    def is_polling(self, video_id: str) -> bool:
        watch = self._watches.get(video_id)
        return watch is not None and not watch.task.done()

    def watch(self, video_id: str) -> asyncio.Task:
        """Start polling ``video_id`` unless a watch is already running; must run on the event loop."""
        existing = self._watches.get(video_id)
        if existing is not None and not existing.task.done():
            return existing.task

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        task = loop.create_task(self._run(video_id, stop_event), name=f"poll-{video_id}")
        self._watches[video_id] = _Watch(task=task, stop_event=stop_event, loop=loop)
        self._outcomes.pop(video_id, None)
        logger.info("poll.started video_id=%s", safe_log_identifier(video_id, prefix="vid"))
        return task

    def stop(self, video_id: str) -> bool:
        """Signal the watch for ``video_id`` to stop; safe to call from any thread."""
        watch = self._watches.get(video_id)
        if watch is None or watch.task.done():
            return False
        watch.loop.call_soon_threadsafe(watch.stop_event.set)
        return True

    def state(self, video_id: str) -> WatchState:
        watch = self._watches.get(video_id)
        if watch is not None and not watch.task.done():
            return WatchState(
                video_id=video_id,
                polling=True,
                outcome=watch.last_snapshot,
                last_error=watch.last_error,
            )
        return self._outcomes.get(video_id) or WatchState(video_id=video_id, polling=False)

    async def shutdown(self) -> None:
        tasks = []
        for watch in list(self._watches.values()):
            watch.stop_event.set()
            tasks.append(watch.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, video_id: str, stop_event: asyncio.Event) -> ProgressSnapshot | None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout_seconds
        safe_video_id = safe_log_identifier(video_id, prefix="vid")
        watch = self._watches[video_id]

        try:
            while not stop_event.is_set():
                try:
                    snapshot = await asyncio.to_thread(self._check_progress, video_id)
                except TransportError as exc:
                    watch.last_error = exc.message
                    logger.warning("poll.transport_error video_id=%s reason=%s", safe_video_id, exc.message)
                else:
                    watch.last_snapshot = snapshot
                    watch.last_error = None
                    if snapshot.status in _FINAL_STATUSES:
                        logger.info("poll.finished video_id=%s status=%s", safe_video_id, snapshot.status.value)
                        self._finish(video_id, watch, outcome=snapshot)
                        return snapshot

                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning("poll.timed_out video_id=%s", safe_video_id)
                    stale = ProgressSnapshot(
                        status=TranscriptionStatus.IN_PROGRESS,
                        progress_percent=watch.last_snapshot.progress_percent if watch.last_snapshot else 0,
                        message=STALE_PROGRESS_MESSAGE,
                        job_name=watch.last_snapshot.job_name if watch.last_snapshot else None,
                    )
                    self._finish(video_id, watch, outcome=stale, timed_out=True)
                    return stale

                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=min(self._interval_seconds, remaining))
                except TimeoutError:
                    pass

            logger.info("poll.stopped video_id=%s", safe_video_id)
            self._finish(video_id, watch, outcome=watch.last_snapshot)
            return watch.last_snapshot
        except Exception as exc:
            logger.exception("poll.aborted video_id=%s", safe_video_id)
            self._finish(video_id, watch, outcome=watch.last_snapshot, error=str(exc))
            return None

    def _finish(
        self,
        video_id: str,
        watch: _Watch,
        *,
        outcome: ProgressSnapshot | None,
        timed_out: bool = False,
        error: str | None = None,
    ) -> None:
        self._outcomes.pop(video_id, None)
        self._outcomes[video_id] = WatchState(
            video_id=video_id,
            polling=False,
            outcome=outcome,
            timed_out=timed_out,
            last_error=error or watch.last_error,
        )
        while len(self._outcomes) > self._max_outcomes:
            del self._outcomes[next(iter(self._outcomes))]
        if self._watches.get(video_id) is watch:
            del self._watches[video_id]
