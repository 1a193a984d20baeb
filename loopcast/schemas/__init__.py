from loopcast.schemas.asset import AssetPair, AudioAsset, ContentType, VisualAsset
from loopcast.schemas.render import (
    CancelResponse,
    GenerateVideoRequest,
    GenerateVideoResponse,
    ProgressResponse,
)
from loopcast.schemas.video import (
    VideoGenerationOptions,
    VideoGenerationResult,
    VideoOverlay,
)

__all__ = [
    "AssetPair",
    "AudioAsset",
    "CancelResponse",
    "ContentType",
    "GenerateVideoRequest",
    "GenerateVideoResponse",
    "ProgressResponse",
    "VideoGenerationOptions",
    "VideoGenerationResult",
    "VideoOverlay",
    "VisualAsset",
]
