"""Video generation API endpoints.

Generation runs as a background task after the 202 response; clients poll
the progress endpoint with the returned job id.
"""

import logging
import re
import time
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from loopcast.api.deps import Composer
from loopcast.exceptions import JobNotFoundError
from loopcast.render.composer import VideoComposer
from loopcast.render.presets import (
    SLEEP_VIDEO_MINUTES,
    create_ambient_video,
    create_professional_video,
    create_rain_video,
    create_sleep_video,
)
from loopcast.schemas.render import (
    CancelResponse,
    GenerateVideoRequest,
    GenerateVideoResponse,
    ProgressResponse,
)
from loopcast.schemas.video import VideoGenerationResult

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 50


def slugify_title(title: str) -> str:
    """Lower-case, non-alphanumeric runs collapsed to '-', max 50 chars."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower())[:MAX_SLUG_LENGTH]


def build_output_path(title: str, output_dir: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return str(Path(output_dir) / f"{slugify_title(title)}-{timestamp_ms}.mp4")


async def run_generation(
    request: GenerateVideoRequest,
    job_id: str,
    output_path: str,
    composer: VideoComposer,
) -> VideoGenerationResult:
    """Dispatch a request to the preset matching its content type."""
    try:
        if (
            request.content_type == "sleep_sounds"
            and request.duration_minutes == SLEEP_VIDEO_MINUTES
        ):
            result = await create_sleep_video(
                request.title, output_path, request.show_watermark, job_id, composer
            )
        elif request.content_type == "rain_sounds":
            result = await create_rain_video(
                request.title,
                request.duration_minutes,
                output_path,
                request.show_watermark,
                job_id,
                composer,
            )
        elif request.content_type == "ambient_sounds":
            result = await create_ambient_video(
                request.title,
                request.duration_minutes,
                output_path,
                request.show_watermark,
                job_id,
                composer,
            )
        else:
            result = await create_professional_video(
                content_type=request.content_type,
                title=request.title,
                subtitle=request.subtitle,
                duration_minutes=request.duration_minutes,
                output_path=output_path,
                quality=request.quality,
                show_watermark=request.show_watermark,
                show_duration=request.show_duration,
                color_grading=request.color_grading,
                job_id=job_id,
                composer=composer,
            )
    finally:
        composer.release(job_id)

    if result.success:
        logger.info(
            f"[VIDEOS] Job {job_id} finished: {result.output_path} "
            f"({(result.file_size or 0) / 1024 / 1024:.2f} MB)"
        )
    else:
        logger.error(f"[VIDEOS] Job {job_id} failed ({result.error_code}): {result.error}")
    return result


@router.post(
    "/videos",
    response_model=GenerateVideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_video_generation(
    request: GenerateVideoRequest,
    composer: Composer,
    background_tasks: BackgroundTasks,
) -> GenerateVideoResponse:
    """
    Start generating a looped video.

    Returns immediately; the encode runs in the background.
    """
    job_id = request.job_id or str(uuid4())

    if composer.is_running(job_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job {job_id} is already running",
        )

    output_path = build_output_path(request.title, composer.settings.output_dir)
    logger.info(
        f"[VIDEOS] Starting job {job_id}: {request.content_type} | "
        f"{request.duration_minutes}min | quality={request.quality}"
    )

    # Visible to pollers before the background task gets scheduled
    composer.tracker.init_progress(job_id, request.duration_minutes * 60)
    composer.reserve(job_id)
    background_tasks.add_task(run_generation, request, job_id, output_path, composer)

    return GenerateVideoResponse(
        job_id=job_id,
        output_path=output_path,
        progress_url=f"/api/videos/progress/{job_id}",
    )


@router.get("/videos/progress/{job_id}", response_model=ProgressResponse)
async def get_video_progress(job_id: str, composer: Composer) -> ProgressResponse:
    progress = composer.tracker.get_progress(job_id)
    if progress is None:
        raise JobNotFoundError(job_id)
    return ProgressResponse(**progress.to_dict(now=composer.tracker.now()))


@router.delete(
    "/videos/{job_id}",
    response_model=CancelResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def cancel_video_generation(job_id: str, composer: Composer) -> CancelResponse:
    """Cancel a queued or running job."""
    if not await composer.cancel(job_id):
        raise JobNotFoundError(job_id)
    return CancelResponse(job_id=job_id, cancelled=True)
