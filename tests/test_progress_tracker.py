"""Tests for job progress tracking.

Features:
- Percentage recomputation and capping
- Terminal state guard
- Stale record sweeping
- Background sweeper lifecycle
"""

import asyncio
import threading

import pytest

from loopcast.services.progress_tracker import (
    InMemoryProgressStore,
    ProgressStatus,
    ProgressSweeper,
    ProgressTracker,
    VideoProgress,
    compute_percentage,
)


class TestComputePercentage:
    """Tests for percent-of-target computation."""

    @pytest.mark.parametrize(
        "current,total,expected",
        [
            (0, 1800, 0),
            (900, 1800, 50),
            (1799, 1800, 100),
            (1800, 1800, 100),
            (5000, 1800, 100),
            (27, 1800, 2),
        ],
    )
    def test_values(self, current, total, expected):
        assert compute_percentage(current, total) == expected

    def test_zero_total(self):
        assert compute_percentage(10, 0) == 100


class TestProgressStatus:
    def test_terminal_statuses(self):
        assert ProgressStatus.COMPLETED.is_terminal
        assert ProgressStatus.ERROR.is_terminal
        assert not ProgressStatus.GENERATING.is_terminal
        assert not ProgressStatus.UPLOADING.is_terminal


class TestProgressTracker:
    """Tests for the tracker state machine."""

    def test_init_progress(self, tracker, clock):
        tracker.init_progress("job1", 1800)

        progress = tracker.get_progress("job1")
        assert progress.percentage == 0
        assert progress.current_time == 0
        assert progress.total_duration == 1800
        assert progress.status == ProgressStatus.GENERATING
        assert progress.started_at == clock.now
        assert progress.updated_at == clock.now

    def test_update_recomputes_percentage(self, tracker, clock):
        tracker.init_progress("job1", 1800)
        clock.advance(10)

        tracker.update_progress("job1", 900)

        progress = tracker.get_progress("job1")
        assert progress.percentage == 50
        assert progress.current_time == 900
        assert progress.updated_at == clock.now
        assert progress.status == ProgressStatus.GENERATING

    def test_update_can_go_backwards(self, tracker):
        """Percentage is recomputed, never incremented."""
        tracker.init_progress("job1", 100)
        tracker.update_progress("job1", 60)
        tracker.update_progress("job1", 40)

        assert tracker.get_progress("job1").percentage == 40

    def test_update_keeps_status_and_sets_message(self, tracker):
        tracker.init_progress("job1", 100)
        tracker.update_progress("job1", 100, ProgressStatus.UPLOADING, "Uploading")
        tracker.update_progress("job1", 100)

        progress = tracker.get_progress("job1")
        assert progress.status == ProgressStatus.UPLOADING
        assert progress.message is None

    def test_complete_progress(self, tracker):
        tracker.init_progress("job1", 1800)
        tracker.update_progress("job1", 1000)

        tracker.complete_progress("job1")

        progress = tracker.get_progress("job1")
        assert progress.status == ProgressStatus.COMPLETED
        assert progress.percentage == 100
        assert progress.current_time == 1800
        assert progress.message == "Video generation completed"

    def test_error_keeps_percentage(self, tracker):
        tracker.init_progress("job1", 100)
        tracker.update_progress("job1", 30)

        tracker.error_progress("job1", "FFmpeg error: boom")

        progress = tracker.get_progress("job1")
        assert progress.status == ProgressStatus.ERROR
        assert progress.percentage == 30
        assert progress.message == "FFmpeg error: boom"

    def test_terminal_record_ignores_writes(self, tracker):
        tracker.init_progress("job1", 100)
        tracker.error_progress("job1", "failed")

        tracker.update_progress("job1", 50)
        tracker.complete_progress("job1")
        tracker.error_progress("job1", "second failure")

        progress = tracker.get_progress("job1")
        assert progress.status == ProgressStatus.ERROR
        assert progress.message == "failed"
        assert progress.percentage == 0

    def test_reinit_overwrites(self, tracker):
        tracker.init_progress("job1", 100)
        tracker.complete_progress("job1")

        tracker.init_progress("job1", 200)

        progress = tracker.get_progress("job1")
        assert progress.status == ProgressStatus.GENERATING
        assert progress.total_duration == 200

    def test_unknown_job_is_silent(self, tracker):
        tracker.update_progress("missing", 10)
        tracker.complete_progress("missing")
        tracker.error_progress("missing", "x")

        assert tracker.get_progress("missing") is None

    def test_returned_record_is_a_copy(self, tracker):
        tracker.init_progress("job1", 100)

        progress = tracker.get_progress("job1")
        progress.percentage = 99

        assert tracker.get_progress("job1").percentage == 0

    def test_cleanup_old_progress(self, tracker, clock):
        tracker.init_progress("old", 100)
        clock.advance(3000)
        tracker.init_progress("fresh", 100)
        clock.advance(1000)

        removed = tracker.cleanup_old_progress()

        assert removed == 1
        assert tracker.get_progress("old") is None
        assert tracker.get_progress("fresh") is not None

    def test_updates_keep_record_alive(self, tracker, clock):
        tracker.init_progress("job1", 28800)
        clock.advance(3500)
        tracker.update_progress("job1", 10000)
        clock.advance(3500)

        assert tracker.cleanup_old_progress() == 0
        assert tracker.get_progress("job1") is not None


class TestVideoProgress:
    """Tests for derived timing values."""

    def _progress(self, current_time: float) -> VideoProgress:
        return VideoProgress(
            job_id="job1",
            percentage=0,
            current_time=current_time,
            total_duration=1800,
            status=ProgressStatus.GENERATING,
            started_at=1000.0,
            updated_at=1000.0,
        )

    def test_elapsed(self):
        assert self._progress(0).elapsed(now=1060.0) == 60.0

    def test_time_remaining(self):
        # 600s of media in 60s wall clock -> 1200s of media left takes 120s
        assert self._progress(600).estimated_time_remaining(now=1060.0) == pytest.approx(120.0)

    def test_time_remaining_unknown_before_start(self):
        assert self._progress(0).estimated_time_remaining(now=1060.0) is None

    def test_to_dict(self):
        data = self._progress(600).to_dict(now=1060.0)

        assert data["job_id"] == "job1"
        assert data["status"] == "generating"
        assert data["elapsed"] == 60.0
        assert data["time_remaining"] == pytest.approx(120.0)


class TestInMemoryProgressStore:
    def test_concurrent_writers(self):
        store = InMemoryProgressStore()
        tracker = ProgressTracker(store=store, ttl_seconds=60)

        def worker(n: int) -> None:
            for i in range(50):
                job_id = f"job-{n}-{i}"
                tracker.init_progress(job_id, 100)
                tracker.update_progress(job_id, 50)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 200

    def test_delete(self):
        store = InMemoryProgressStore()
        tracker = ProgressTracker(store=store, ttl_seconds=60)
        tracker.init_progress("job1", 100)

        store.delete("job1")
        store.delete("job1")

        assert tracker.get_progress("job1") is None


class TestProgressSweeper:
    """Tests for the periodic sweep loop."""

    @pytest.mark.asyncio
    async def test_sweeps_on_interval(self, tracker, clock):
        tracker.init_progress("old", 100)
        clock.advance(7200)

        sweeper = ProgressSweeper(tracker, interval_seconds=0.01)
        sweeper.start()
        assert sweeper.running is True

        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert sweeper.running is False
        assert tracker.get_progress("old") is None

    @pytest.mark.asyncio
    async def test_stop_without_start(self, tracker):
        sweeper = ProgressSweeper(tracker, interval_seconds=10)
        await sweeper.stop()
        assert sweeper.running is False
