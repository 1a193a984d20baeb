"""
Looped video composer.

Turns one short audio loop and one short visual loop into a long video:
1. Validate the target duration and resolve asset files
2. Probe the sources for the expected streams (durations are logged only)
3. Build the video/audio filter chains for the chosen quality tier
4. Run one ffmpeg process with -stream_loop on both inputs, cut at -t
5. Parse -progress output into percent-of-target and report it
6. Stat and re-probe the output, then finalize progress

Failures never cross ``generate()`` as exceptions: they come back as a
``VideoGenerationResult`` with ``success=False`` and an error code. Encoder
failures are not retried since bad inputs or filter graphs fail the same way
every time.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

from loopcast.config import Settings, get_settings
from loopcast.exceptions import (
    AssetFileNotFoundError,
    EncoderError,
    InvalidDurationError,
    LoopcastError,
    ProbeError,
    RenderCancelledError,
)
from loopcast.render.filters import (
    QualitySettings,
    build_audio_filter_chain,
    build_video_filter_chain,
    fade_overhead,
    format_duration,
    format_seconds,
    get_quality_settings,
)
from loopcast.schemas.video import VideoGenerationOptions, VideoGenerationResult
from loopcast.services.progress_tracker import (
    ProgressStatus,
    ProgressTracker,
    compute_percentage,
    progress_tracker as default_tracker,
)
from loopcast.utils.media_info import probe_duration, probe_media

logger = logging.getLogger(__name__)

# (current output seconds, percent of target)
ProgressCallback = Callable[[float, int], None]

STDERR_TAIL_LINES = 20
LOG_EVERY_PERCENT = 5


def parse_timemark(timemark: str) -> float | None:
    """Parse ``HH:MM:SS.mmm`` or ``MM:SS.mmm`` into seconds.

    Returns None for anything else, including ffmpeg's negative or N/A
    placeholders before the first frame is written.
    """
    parts = timemark.strip().split(":")
    try:
        values = [float(p) for p in parts]
    except ValueError:
        return None

    if len(values) == 3:
        seconds = values[0] * 3600 + values[1] * 60 + values[2]
    elif len(values) == 2:
        seconds = values[0] * 60 + values[1]
    else:
        return None

    if seconds < 0:
        return None
    return seconds


def progress_seconds_from_report(report: dict[str, str], target_duration: float) -> float | None:
    """Elapsed output seconds from one ffmpeg -progress block.

    Prefers the ``out_time`` timemark, then ``out_time_us``, then a raw
    ``percent`` scaled against the target duration.
    """
    timemark = report.get("out_time")
    if timemark:
        seconds = parse_timemark(timemark)
        if seconds is not None:
            return seconds

    out_time_us = report.get("out_time_us")
    if out_time_us:
        try:
            micros = int(out_time_us)
        except ValueError:
            micros = -1
        if micros >= 0:
            return micros / 1_000_000

    percent = report.get("percent")
    if percent:
        try:
            capped = min(100.0, float(percent))
        except ValueError:
            return None
        if capped >= 0:
            return capped / 100 * target_duration

    return None


@dataclass
class _ProgressState:
    next_log_percent: int = LOG_EVERY_PERCENT


@dataclass
class RenderHandle:
    """A composition job running in the background."""

    job_id: str
    task: asyncio.Task
    composer: "VideoComposer" = field(repr=False)

    async def cancel(self) -> bool:
        """Terminate the encode. Returns False if the job already finished."""
        return await self.composer.cancel(self.job_id)

    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> VideoGenerationResult:
        return await self.task


class VideoComposer:
    """
    Long-form looped video composer backed by ffmpeg.

    Handles:
    - Input-level infinite looping of audio and visual sources
    - Scale/pad, color grading, fades and optional text overlays
    - Incremental progress through a ProgressTracker
    - Bounded concurrent encodes and per-job cancellation
    """

    def __init__(
        self,
        settings: Settings | None = None,
        tracker: ProgressTracker | None = None,
        max_concurrent: int | None = None,
    ):
        self.settings = settings or get_settings()
        self.tracker = tracker or default_tracker
        self.ffmpeg_path = self.settings.ffmpeg_path
        self.max_concurrent = max_concurrent or self.settings.max_concurrent_renders

        self._semaphore: asyncio.Semaphore | None = None
        self._active: set[str] = set()
        self._cancelled: set[str] = set()
        self._processes: dict[str, asyncio.subprocess.Process] = {}

    # ========================================================================
    # Public API
    # ========================================================================

    def start(
        self,
        options: VideoGenerationOptions,
        on_progress: ProgressCallback | None = None,
    ) -> RenderHandle:
        """Schedule a composition and return a cancellable handle.

        A job id is generated when the options do not carry one.
        """
        if options.job_id is None:
            options = options.model_copy(update={"job_id": str(uuid4())})
        job_id = options.job_id
        self.reserve(job_id)
        task = asyncio.create_task(self.generate(options, on_progress), name=f"compose-{job_id}")
        return RenderHandle(job_id=job_id, task=task, composer=self)

    def reserve(self, job_id: str) -> None:
        """Mark a job active before its generate() call is scheduled.

        Lets cancel() find jobs that are waiting to start.
        """
        self._active.add(job_id)

    def release(self, job_id: str) -> None:
        """Forget a reserved job that never reached generate()."""
        self._active.discard(job_id)
        self._cancelled.discard(job_id)

    def is_running(self, job_id: str) -> bool:
        """True while a job is queued or encoding."""
        return job_id in self._active

    async def cancel(self, job_id: str) -> bool:
        """Cancel a queued or running job.

        A running encoder is terminated. A job that has not reached the
        encoder yet is marked cancelled now and exits when it gets there.
        Returns False if no such job is active.
        """
        if job_id not in self._active:
            return False

        logger.info(f"[COMPOSER] Cancelling job {job_id}")
        self._cancelled.add(job_id)

        proc = self._processes.get(job_id)
        if proc is not None:
            await self._terminate(proc)
        else:
            self.tracker.error_progress(job_id, RenderCancelledError.message)
        return True

    async def generate(
        self,
        options: VideoGenerationOptions,
        on_progress: ProgressCallback | None = None,
    ) -> VideoGenerationResult:
        """
        Compose one looped video.

        Args:
            options: Request descriptor (assets, duration, style, job id)
            on_progress: Optional callback receiving (seconds, percent)

        Returns:
            VideoGenerationResult; never raises for request or encoder failures
        """
        job_id = options.job_id
        job_key = job_id or f"anon-{uuid4().hex[:8]}"

        self._active.add(job_key)

        if job_id and job_key not in self._cancelled:
            self.tracker.init_progress(job_id, options.target_duration)

        try:
            return await self._generate(options, job_key, on_progress)
        except asyncio.CancelledError:
            # Task cancelled from outside (e.g. shutdown): record it, then propagate
            if job_id:
                self.tracker.error_progress(job_id, "Video generation interrupted")
            raise
        except LoopcastError as e:
            return self._fail(job_id, e)
        except Exception as e:
            logger.exception(f"[COMPOSER] Unexpected failure for job {job_key}")
            return self._fail(
                job_id,
                LoopcastError(f"Video generation failed: {e}"),
            )
        finally:
            self._active.discard(job_key)
            self._cancelled.discard(job_key)
            self._processes.pop(job_key, None)

    # ========================================================================
    # Command construction
    # ========================================================================

    def resolve_asset_path(self, asset_path: str) -> Path:
        """Catalog path (``/assets/...``) -> file below the assets root."""
        return Path(self.settings.assets_root) / asset_path.lstrip("/")

    def validate_duration(self, options: VideoGenerationOptions) -> None:
        """
        Raises:
            InvalidDurationError: If the fades do not fit or the maximum is exceeded
        """
        overhead = fade_overhead(options, self.settings.fade_duration_seconds)
        target = options.target_duration

        if target <= 0 or target <= overhead:
            raise InvalidDurationError(
                f"Target duration {target:g}s must exceed the {overhead:g}s fade overhead"
            )
        if target > self.settings.max_target_duration_seconds:
            raise InvalidDurationError(
                f"Target duration {target:g}s exceeds the maximum of "
                f"{self.settings.max_target_duration_seconds}s"
            )

    def build_command(
        self,
        options: VideoGenerationOptions,
        visual_path: str,
        audio_path: str,
        quality: QualitySettings | None = None,
    ) -> list[str]:
        """Build the ffmpeg command without executing it."""
        quality = quality or get_quality_settings(options.quality)
        fade = self.settings.fade_duration_seconds

        video_chain = build_video_filter_chain(options, quality, self.settings)
        audio_chain = build_audio_filter_chain(
            options.target_duration,
            fade_in=options.fade_in,
            fade_out=options.fade_out,
            fade_duration=fade,
        )

        return [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-stream_loop", "-1", "-i", visual_path,
            "-stream_loop", "-1", "-i", audio_path,
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-vf", video_chain,
            "-af", audio_chain,
            "-t", format_seconds(options.target_duration),
            "-c:v", "libx264",
            "-preset", quality.preset,
            "-crf", str(quality.crf),
            "-b:v", quality.video_bitrate,
            "-maxrate", quality.video_bitrate,
            "-bufsize", quality.bufsize,
            "-c:a", "aac",
            "-b:a", quality.audio_bitrate,
            "-ar", str(self.settings.audio_sample_rate),
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-progress", "pipe:1",
            "-nostats",
            options.output_path,
        ]

    # ========================================================================
    # Pipeline
    # ========================================================================

    async def _generate(
        self,
        options: VideoGenerationOptions,
        job_key: str,
        on_progress: ProgressCallback | None,
    ) -> VideoGenerationResult:
        if job_key in self._cancelled:
            raise RenderCancelledError()

        self.validate_duration(options)
        quality = get_quality_settings(options.quality)

        audio_path = self.resolve_asset_path(options.audio_asset.path)
        visual_path = self.resolve_asset_path(options.visual_asset.path)

        # Fail fast before paying encoder startup
        for path in (audio_path, visual_path):
            if not path.is_file():
                raise AssetFileNotFoundError(str(path))

        audio_info = await probe_media(str(audio_path))
        if not audio_info.has_audio:
            raise ProbeError(f"No audio stream in: {audio_path}")
        visual_info = await probe_media(str(visual_path))
        if not visual_info.has_video:
            raise ProbeError(f"No video stream in: {visual_path}")

        target = options.target_duration
        logger.info("[COMPOSER] Creating looped video composition")
        logger.info(
            f"[COMPOSER] Audio: {options.audio_asset.name} ({audio_info.duration or 0:.2f}s)"
        )
        logger.info(
            f"[COMPOSER] Visual: {options.visual_asset.name} "
            f"({visual_info.duration or 0:.2f}s, {visual_info.width}x{visual_info.height})"
        )
        logger.info(
            f"[COMPOSER] Target duration: {target:g}s ({format_duration(target)}), "
            f"quality={options.quality} ({quality.resolution})"
        )

        output_path = Path(options.output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = self.build_command(options, str(visual_path), str(audio_path), quality)
        logger.debug(f"[COMPOSER] ffmpeg command: {' '.join(cmd)}")

        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        if self._semaphore.locked() and options.job_id:
            self.tracker.update_progress(options.job_id, 0.0, message="Queued")

        async with self._semaphore:
            if job_key in self._cancelled:
                raise RenderCancelledError()
            await self._run_encoder(cmd, options, job_key, on_progress)

        file_size = output_path.stat().st_size
        final_duration = await probe_duration(str(output_path))

        if abs(final_duration - target) > self.settings.duration_tolerance_seconds:
            logger.warning(
                f"[COMPOSER] Output duration {final_duration:.2f}s differs from "
                f"target {target:g}s"
            )

        logger.info("[COMPOSER] Video created successfully")
        logger.info(f"[COMPOSER] Output: {output_path}")
        logger.info(
            f"[COMPOSER] Duration: {final_duration:.2f}s ({final_duration / 60:.2f} minutes)"
        )
        logger.info(f"[COMPOSER] File size: {file_size / 1024 / 1024:.2f} MB")

        if options.job_id:
            self.tracker.complete_progress(options.job_id, "Video generation completed")

        return VideoGenerationResult(
            success=True,
            output_path=str(output_path),
            duration=final_duration,
            file_size=file_size,
        )

    async def _run_encoder(
        self,
        cmd: list[str],
        options: VideoGenerationOptions,
        job_key: str,
        on_progress: ProgressCallback | None,
    ) -> None:
        """Run ffmpeg to completion, streaming progress.

        Raises:
            RenderCancelledError: If cancel() terminated the process
            EncoderError: If ffmpeg exits non-zero
        """
        logger.info("[COMPOSER] Starting composition...")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise EncoderError(f"ffmpeg not found: {self.ffmpeg_path}") from e

        self._processes[job_key] = proc
        if job_key in self._cancelled:
            # cancel() arrived while the process was being spawned
            await self._terminate(proc)
        stderr_task = asyncio.create_task(self._collect_stderr(proc))
        state = _ProgressState()

        try:
            report: dict[str, str] = {}
            async for raw_line in proc.stdout:
                line = raw_line.decode("utf-8", errors="replace").strip()
                key, sep, value = line.partition("=")
                if not sep:
                    continue
                report[key] = value
                if key == "progress":
                    self._handle_progress_report(report, options, state, on_progress)
                    report = {}
                    if value == "end":
                        break

            returncode = await proc.wait()
            stderr_tail = await stderr_task
        except BaseException:
            # Covers task cancellation and failing progress callbacks alike:
            # ffmpeg must not outlive the job that stopped reading its output
            await self._terminate(proc)
            stderr_task.cancel()
            raise

        logger.info(f"[COMPOSER] ffmpeg returncode: {returncode}")

        if job_key in self._cancelled:
            raise RenderCancelledError()
        if returncode != 0:
            logger.error(f"[COMPOSER] ffmpeg stderr: {stderr_tail}")
            raise EncoderError(stderr_tail, returncode)

    def _handle_progress_report(
        self,
        report: dict[str, str],
        options: VideoGenerationOptions,
        state: _ProgressState,
        on_progress: ProgressCallback | None,
    ) -> None:
        target = options.target_duration
        seconds = progress_seconds_from_report(report, target)
        if seconds is None:
            return

        percent = compute_percentage(seconds, target)

        if options.job_id:
            self.tracker.update_progress(options.job_id, seconds, ProgressStatus.GENERATING)
        if on_progress is not None:
            on_progress(seconds, percent)

        if percent >= state.next_log_percent:
            logger.info(
                f"[COMPOSER] Progress: {percent}% "
                f"({format_duration(seconds)} / {format_duration(target)})"
            )
            state.next_log_percent = (percent // LOG_EVERY_PERCENT + 1) * LOG_EVERY_PERCENT

    async def _collect_stderr(self, proc: asyncio.subprocess.Process) -> str:
        """Drain stderr so the pipe never blocks ffmpeg; keep the tail."""
        tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        if proc.stderr is None:
            return ""
        async for raw_line in proc.stderr:
            line = raw_line.decode("utf-8", errors="replace").rstrip()
            if line:
                tail.append(line)
        return "\n".join(tail)

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """SIGTERM, then SIGKILL after the grace period."""
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.settings.cancel_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning("[COMPOSER] ffmpeg did not exit after SIGTERM, killing")
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()

    def _fail(self, job_id: str | None, error: LoopcastError) -> VideoGenerationResult:
        logger.error(f"[COMPOSER] {error.code}: {error.message}")
        if job_id:
            self.tracker.error_progress(job_id, error.message)
        return VideoGenerationResult.failure(error.message, error.code)
