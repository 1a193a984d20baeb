"""Progress tracking for video generation jobs.

Keeps one ``VideoProgress`` record per job id for status polling. This is a
telemetry side channel: unknown job ids are silently ignored on writes and
return None on reads, and records are swept once they go stale.

The store is injectable. ``InMemoryProgressStore`` gives per-process
tracking; a shared cache can implement ``ProgressStore`` for multi-process
deployments without touching call sites.
"""

import abc
import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from loopcast.config import get_settings

logger = logging.getLogger(__name__)


class ProgressStatus(Enum):
    """Job status as seen by pollers."""

    GENERATING = "generating"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStatus.COMPLETED, ProgressStatus.ERROR)


@dataclass
class VideoProgress:
    """Progress information for one generation job."""

    job_id: str
    percentage: int
    current_time: float  # seconds of output encoded
    total_duration: float  # seconds
    status: ProgressStatus
    started_at: float  # epoch seconds
    updated_at: float  # epoch seconds
    message: str | None = None

    def elapsed(self, now: float | None = None) -> float:
        """Wall-clock seconds since the job started."""
        now = time.time() if now is None else now
        return max(0.0, now - self.started_at)

    def estimated_time_remaining(self, now: float | None = None) -> float | None:
        """Extrapolate remaining wall-clock time from the encode rate so far."""
        remaining = self.total_duration - self.current_time
        if remaining <= 0 or self.current_time <= 0:
            return None
        return (self.elapsed(now) / self.current_time) * remaining

    def to_dict(self, now: float | None = None) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "job_id": self.job_id,
            "percentage": self.percentage,
            "current_time": self.current_time,
            "total_duration": self.total_duration,
            "status": self.status.value,
            "message": self.message,
            "elapsed": self.elapsed(now),
            "time_remaining": self.estimated_time_remaining(now),
        }


def compute_percentage(current_time: float, total_duration: float) -> int:
    """Percent of target duration, rounded and capped at 100."""
    if total_duration <= 0:
        return 100
    return min(100, round(current_time / total_duration * 100))


# ============================================================================
# Stores
# ============================================================================


class ProgressStore(abc.ABC):
    """Storage backend for progress records."""

    @abc.abstractmethod
    def get(self, job_id: str) -> VideoProgress | None:
        """Return the record for job_id, or None."""

    @abc.abstractmethod
    def set(self, progress: VideoProgress) -> None:
        """Insert or replace a record keyed by its job_id."""

    @abc.abstractmethod
    def delete(self, job_id: str) -> None:
        """Remove a record if present."""

    @abc.abstractmethod
    def sweep(self, older_than: float) -> int:
        """Delete records whose updated_at is before ``older_than``.

        Returns the number of records removed.
        """


class InMemoryProgressStore(ProgressStore):
    """Thread-safe dict-backed store."""

    def __init__(self) -> None:
        self._store: dict[str, VideoProgress] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> VideoProgress | None:
        with self._lock:
            progress = self._store.get(job_id)
            # Hand out copies so pollers cannot mutate the stored record
            return replace(progress) if progress is not None else None

    def set(self, progress: VideoProgress) -> None:
        with self._lock:
            self._store[progress.job_id] = replace(progress)

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._store.pop(job_id, None)

    def sweep(self, older_than: float) -> int:
        with self._lock:
            expired = [k for k, v in self._store.items() if v.updated_at < older_than]
            for k in expired:
                del self._store[k]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


# ============================================================================
# Tracker
# ============================================================================


class ProgressTracker:
    """Job progress state machine on top of a ProgressStore.

    generating -> uploading -> completed, or generating -> error at any time.
    Once a record is completed or errored it only changes by being swept.
    """

    def __init__(
        self,
        store: ProgressStore | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store or InMemoryProgressStore()
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else get_settings().progress_ttl_seconds
        )
        self._clock = clock

    def now(self) -> float:
        """Current time on the tracker clock."""
        return self._clock()

    def init_progress(self, job_id: str, total_duration: float) -> None:
        """Start tracking a job. Re-initializing an id overwrites it."""
        now = self._clock()
        self.store.set(
            VideoProgress(
                job_id=job_id,
                percentage=0,
                current_time=0.0,
                total_duration=total_duration,
                status=ProgressStatus.GENERATING,
                started_at=now,
                updated_at=now,
            )
        )

    def _get_writable(self, job_id: str) -> VideoProgress | None:
        progress = self.store.get(job_id)
        if progress is None:
            return None
        if progress.status.is_terminal:
            logger.debug(
                f"[PROGRESS] Ignoring write to {job_id}: already {progress.status.value}"
            )
            return None
        return progress

    def update_progress(
        self,
        job_id: str,
        current_time: float,
        status: ProgressStatus | None = None,
        message: str | None = None,
    ) -> None:
        """Record encoded media time. Percentage is recomputed from scratch."""
        progress = self._get_writable(job_id)
        if progress is None:
            return

        progress.percentage = compute_percentage(current_time, progress.total_duration)
        progress.current_time = current_time
        progress.status = status or progress.status
        progress.message = message
        progress.updated_at = self._clock()
        self.store.set(progress)

    def complete_progress(self, job_id: str, message: str | None = None) -> None:
        """Mark a job completed at 100%."""
        progress = self._get_writable(job_id)
        if progress is None:
            return

        progress.percentage = 100
        progress.current_time = progress.total_duration
        progress.status = ProgressStatus.COMPLETED
        progress.message = message or "Video generation completed"
        progress.updated_at = self._clock()
        self.store.set(progress)

    def error_progress(self, job_id: str, message: str) -> None:
        """Mark a job failed. Percentage stays where it was."""
        progress = self._get_writable(job_id)
        if progress is None:
            return

        progress.status = ProgressStatus.ERROR
        progress.message = message
        progress.updated_at = self._clock()
        self.store.set(progress)

    def get_progress(self, job_id: str) -> VideoProgress | None:
        """Current record, or None if unknown or expired."""
        return self.store.get(job_id)

    def cleanup_old_progress(self) -> int:
        """Drop records not updated within the TTL."""
        removed = self.store.sweep(self._clock() - self.ttl_seconds)
        if removed:
            logger.info(f"[PROGRESS] Swept {removed} stale progress records")
        return removed


class ProgressSweeper:
    """Runs ``cleanup_old_progress`` on an interval in the event loop."""

    def __init__(self, tracker: ProgressTracker, interval_seconds: float | None = None) -> None:
        self.tracker = tracker
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().progress_sweep_interval_seconds
        )
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="progress-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.tracker.cleanup_old_progress()
            except Exception as e:
                logger.warning(f"[PROGRESS] Sweep failed: {e}")


# Process-wide default tracker used by the HTTP layer
progress_tracker = ProgressTracker()
