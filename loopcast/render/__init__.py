from loopcast.render.composer import RenderHandle, VideoComposer
from loopcast.render.filters import (
    QUALITY_PRESETS,
    QualitySettings,
    build_audio_filter_chain,
    build_video_filter_chain,
    get_quality_settings,
)

__all__ = [
    "VideoComposer",
    "RenderHandle",
    "QualitySettings",
    "QUALITY_PRESETS",
    "get_quality_settings",
    "build_video_filter_chain",
    "build_audio_filter_chain",
]
