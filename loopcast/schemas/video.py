from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from loopcast.schemas.asset import AudioAsset, VisualAsset

Quality = Literal["high", "medium", "low"]
ColorGrading = Literal["warm", "cool", "natural", "cinematic"]
OverlayPosition = Literal[
    "top", "center", "bottom", "top-left", "top-right", "bottom-left", "bottom-right"
]
OverlayType = Literal["title", "subtitle", "watermark", "duration", "brand"]


class VideoOverlay(BaseModel):
    """A caller-supplied text overlay."""

    type: OverlayType = "brand"
    text: str | None = None
    position: OverlayPosition = "center"
    font_size: int | None = None
    font_color: str | None = None
    background_color: str | None = None
    opacity: float | None = Field(default=None, ge=0.0, le=1.0)
    start_time: float | None = Field(default=None, ge=0.0)  # seconds
    duration: float | None = Field(default=None, ge=0.0)  # 0 / None = rest of the video


class VideoGenerationOptions(BaseModel):
    """Full request descriptor for one composition job."""

    model_config = ConfigDict(frozen=True)

    audio_asset: AudioAsset
    visual_asset: VisualAsset
    target_duration: float  # seconds, e.g. 1800 for 30 minutes
    output_path: str
    quality: Quality = "high"
    title: str | None = None
    subtitle: str | None = None
    show_watermark: bool = False
    show_duration: bool = False
    fade_in: bool = True
    fade_out: bool = True
    color_grading: ColorGrading = "natural"
    overlays: tuple[VideoOverlay, ...] = ()
    job_id: str | None = None


class VideoGenerationResult(BaseModel):
    """Terminal outcome of one composition job."""

    success: bool
    output_path: str | None = None
    duration: float | None = None  # measured seconds
    file_size: int | None = None  # bytes
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def failure(cls, error: str, error_code: str = "INTERNAL_ERROR") -> "VideoGenerationResult":
        return cls(success=False, error=error, error_code=error_code)
