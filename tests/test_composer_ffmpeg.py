"""End-to-end composition against a real ffmpeg build.

Skipped unless ffmpeg and ffprobe (with libx264) are on PATH. The sources
are a 3 s tone and a 2 s test pattern, so every render loops both inputs.
"""

import pytest

from loopcast.config import Settings
from loopcast.render.composer import VideoComposer
from loopcast.services.progress_tracker import ProgressStatus, ProgressTracker
from loopcast.utils.media_info import get_media_info

DURATION_TOLERANCE = 2.0


@pytest.fixture
def real_composer(tmp_path, real_assets_root):
    settings = Settings(
        _env_file=None,
        assets_root=str(real_assets_root),
        output_dir=str(tmp_path / "out"),
    )
    return VideoComposer(settings=settings, tracker=ProgressTracker())


async def _render(composer, make_options, target: float):
    reported: list[float] = []
    options = make_options(target_duration=target, quality="low", job_id=f"real-{int(target)}")
    result = await composer.generate(options, lambda seconds, pct: reported.append(seconds))
    return options, result, reported


@pytest.mark.requires_ffmpeg
class TestRealComposition:
    @pytest.mark.asyncio
    async def test_short_loop_matches_target(self, real_composer, make_options):
        options, result, reported = await _render(real_composer, make_options, 20.0)

        assert result.success is True, result.error
        assert result.output_path == options.output_path
        assert abs(result.duration - 20.0) <= DURATION_TOLERANCE
        assert result.file_size > 0

        progress = real_composer.tracker.get_progress(options.job_id)
        assert progress.status == ProgressStatus.COMPLETED
        assert progress.percentage == 100
        assert reported == sorted(reported)

    @pytest.mark.asyncio
    async def test_output_streams(self, real_composer, make_options):
        options, result, _ = await _render(real_composer, make_options, 12.0)

        assert result.success is True, result.error
        info = get_media_info(options.output_path)
        assert info.has_video and info.has_audio
        assert info.video_codec == "h264"
        assert info.audio_codec == "aac"
        assert (info.width, info.height) == (854, 480)

    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_thirty_minute_render(self, real_composer, make_options):
        options, result, reported = await _render(real_composer, make_options, 1800.0)

        assert result.success is True, result.error
        assert abs(result.duration - 1800.0) <= DURATION_TOLERANCE
        assert reported and reported[-1] <= 1800.0
