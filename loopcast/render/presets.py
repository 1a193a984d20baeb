"""
Composition presets.

Convenience entry points on top of ``VideoComposer``: smart asset matching
for a content type, per-genre styling (sleep, rain, ambient) and
fixed-length looped videos built from explicit file paths.
"""

import logging
import os

from loopcast.config import get_settings
from loopcast.exceptions import NoMatchingAssetsError
from loopcast.render.composer import VideoComposer
from loopcast.schemas.asset import AssetPair, AudioAsset, VisualAsset
from loopcast.schemas.video import (
    ColorGrading,
    Quality,
    VideoGenerationOptions,
    VideoGenerationResult,
)
from loopcast.services.asset_matcher import get_random_asset_pair

logger = logging.getLogger(__name__)

SLEEP_SUBTITLE = "8 Hours of Relaxing Sleep Sounds"
RAIN_SUBTITLE = "Perfect for Sleep, Study & Relaxation"
AMBIENT_SUBTITLE = "Nature Sounds for Focus & Relaxation"

SLEEP_VIDEO_MINUTES = 480


def quality_for_duration(duration_minutes: float, preferred: Quality = "high") -> Quality:
    """Step high quality down to medium for long renders to keep files manageable."""
    threshold = get_settings().long_render_threshold_minutes
    if preferred == "high" and duration_minutes > threshold:
        return "medium"
    return preferred


def get_smart_asset_pair(content_type: str) -> AssetPair | None:
    """Random compatible audio/visual pair for a content type."""
    return get_random_asset_pair(content_type)


def _grading_for_content(content_type: str, color_grading: ColorGrading) -> ColorGrading:
    # Only the neutral default is replaced; explicit choices win
    if color_grading != "natural":
        return color_grading
    if "rain" in content_type or "sleep" in content_type:
        return "cool"
    if "ambient" in content_type or "nature" in content_type:
        return "warm"
    return color_grading


async def create_professional_video(
    content_type: str,
    title: str,
    duration_minutes: float,
    output_path: str,
    subtitle: str | None = None,
    quality: Quality = "high",
    show_watermark: bool = False,
    show_duration: bool = True,
    color_grading: ColorGrading = "natural",
    job_id: str | None = None,
    composer: VideoComposer | None = None,
) -> VideoGenerationResult:
    """
    Create a polished video with smart asset matching.

    Args:
        content_type: e.g. "rain_sounds", "sleep_sounds", "ambient_sounds"
        title: Title overlay text
        duration_minutes: Target length in minutes
        output_path: Destination .mp4 path
        job_id: Optional id for progress tracking and cancellation
        composer: Composer to run on (a new one when omitted)

    Returns:
        VideoGenerationResult from the composer, or a NO_MATCHING_ASSETS failure
    """
    composer = composer or VideoComposer()

    pair = get_smart_asset_pair(content_type)
    if pair is None:
        error = NoMatchingAssetsError(content_type)
        logger.error(f"[PRESETS] {error.message}")
        if job_id:
            composer.tracker.error_progress(job_id, error.message)
        return VideoGenerationResult.failure(error.message, error.code)

    final_grading = _grading_for_content(content_type, color_grading)
    logger.info(
        f"[PRESETS] {content_type}: {pair.audio.id} + {pair.visual.id}, "
        f"{duration_minutes:g} min, quality={quality}, grading={final_grading}"
    )

    options = VideoGenerationOptions(
        audio_asset=pair.audio,
        visual_asset=pair.visual,
        target_duration=duration_minutes * 60,
        output_path=output_path,
        quality=quality,
        title=title,
        subtitle=subtitle,
        show_watermark=show_watermark,
        show_duration=show_duration,
        fade_in=True,
        fade_out=True,
        color_grading=final_grading,
        job_id=job_id,
    )
    return await composer.generate(options)


async def create_sleep_video(
    title: str,
    output_path: str,
    show_watermark: bool = False,
    job_id: str | None = None,
    composer: VideoComposer | None = None,
) -> VideoGenerationResult:
    """8-hour sleep video. Medium quality keeps the file size reasonable."""
    return await create_professional_video(
        content_type="sleep_sounds",
        title=title,
        subtitle=SLEEP_SUBTITLE,
        duration_minutes=SLEEP_VIDEO_MINUTES,
        output_path=output_path,
        quality="medium",
        show_watermark=show_watermark,
        show_duration=True,
        color_grading="cool",
        job_id=job_id,
        composer=composer,
    )


async def create_rain_video(
    title: str,
    duration_minutes: float,
    output_path: str,
    show_watermark: bool = False,
    job_id: str | None = None,
    composer: VideoComposer | None = None,
) -> VideoGenerationResult:
    """Rain sounds video, 30 minutes to 8 hours."""
    return await create_professional_video(
        content_type="rain_sounds",
        title=title,
        subtitle=RAIN_SUBTITLE,
        duration_minutes=duration_minutes,
        output_path=output_path,
        quality=quality_for_duration(duration_minutes),
        show_watermark=show_watermark,
        show_duration=True,
        color_grading="cool",
        job_id=job_id,
        composer=composer,
    )


async def create_ambient_video(
    title: str,
    duration_minutes: float,
    output_path: str,
    show_watermark: bool = False,
    job_id: str | None = None,
    composer: VideoComposer | None = None,
) -> VideoGenerationResult:
    """Ambient/nature video with warm grading."""
    return await create_professional_video(
        content_type="ambient_sounds",
        title=title,
        subtitle=AMBIENT_SUBTITLE,
        duration_minutes=duration_minutes,
        output_path=output_path,
        quality=quality_for_duration(duration_minutes),
        show_watermark=show_watermark,
        show_duration=True,
        color_grading="warm",
        job_id=job_id,
        composer=composer,
    )


# ============================================================================
# Looped videos from explicit files
# ============================================================================


def _catalog_path(file_path: str, assets_root: str) -> str:
    """Express a filesystem path relative to the assets root."""
    return os.path.relpath(os.path.abspath(file_path), os.path.abspath(assets_root))


async def generate_looped_video(
    audio_path: str,
    video_path: str,
    duration_minutes: float,
    output_path: str,
    quality: Quality = "high",
    composer: VideoComposer | None = None,
) -> VideoGenerationResult:
    """Loop an arbitrary audio file and video file to the target length."""
    composer = composer or VideoComposer()

    audio_asset = AudioAsset(
        id="temp_audio",
        name="Temporary Audio",
        path=_catalog_path(audio_path, composer.settings.assets_root),
        type="rain",
    )
    visual_asset = VisualAsset(
        id="temp_visual",
        name="Temporary Visual",
        path=_catalog_path(video_path, composer.settings.assets_root),
        type="rain",
    )

    options = VideoGenerationOptions(
        audio_asset=audio_asset,
        visual_asset=visual_asset,
        target_duration=duration_minutes * 60,
        output_path=output_path,
        quality=quality,
    )
    return await composer.generate(options)


async def generate_30min_video(
    audio_path: str, video_path: str, output_path: str, composer: VideoComposer | None = None
) -> VideoGenerationResult:
    return await generate_looped_video(audio_path, video_path, 30, output_path, "high", composer)


async def generate_1hour_video(
    audio_path: str, video_path: str, output_path: str, composer: VideoComposer | None = None
) -> VideoGenerationResult:
    return await generate_looped_video(audio_path, video_path, 60, output_path, "high", composer)


async def generate_8hour_video(
    audio_path: str, video_path: str, output_path: str, composer: VideoComposer | None = None
) -> VideoGenerationResult:
    # Medium quality for 8-hour videos to reduce file size
    return await generate_looped_video(
        audio_path, video_path, 480, output_path, "medium", composer
    )
