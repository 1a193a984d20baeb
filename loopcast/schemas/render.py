from typing import Literal

from pydantic import BaseModel, Field

from loopcast.schemas.video import ColorGrading, Quality

# Content types the generation endpoint accepts
RequestContentType = Literal["rain_sounds", "sleep_sounds", "ambient_sounds", "white_noise"]


class GenerateVideoRequest(BaseModel):
    content_type: RequestContentType
    title: str = Field(..., min_length=1)
    subtitle: str | None = None
    duration_minutes: int = Field(..., ge=1, le=480)
    quality: Quality = "high"
    show_watermark: bool = False
    show_duration: bool = True
    color_grading: ColorGrading = "natural"
    job_id: str | None = None  # Generated when not supplied


class GenerateVideoResponse(BaseModel):
    job_id: str
    output_path: str
    progress_url: str


class ProgressResponse(BaseModel):
    job_id: str
    percentage: int
    current_time: float
    total_duration: float
    status: str
    message: str | None = None
    elapsed: float
    time_remaining: float | None = None


class CancelResponse(BaseModel):
    job_id: str
    cancelled: bool
