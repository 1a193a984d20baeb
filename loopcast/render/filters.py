"""
FFmpeg filter construction for looped compositions.

This module handles:
- Quality tier lookup (bitrate, resolution, CRF, x264 preset)
- Scale/pad to the target frame, color grading and fades
- drawtext overlays (title, subtitle, duration badge, watermark, custom)
- The looping audio chain with matching fades
"""

from dataclasses import dataclass

from loopcast.config import Settings, get_settings
from loopcast.exceptions import FilterGraphError
from loopcast.schemas.video import (
    OverlayPosition,
    Quality,
    VideoGenerationOptions,
    VideoOverlay,
)

# Margin from the frame edge for positioned text, in pixels
TEXT_MARGIN = 50
TITLE_FONT_SIZE = 64
SUBTITLE_GAP = 20


@dataclass(frozen=True)
class QualitySettings:
    """Encoder settings for one quality tier."""

    video_bitrate: str
    audio_bitrate: str
    resolution: str  # "WIDTHxHEIGHT"
    crf: int
    preset: str

    @property
    def width(self) -> int:
        return int(self.resolution.split("x")[0])

    @property
    def height(self) -> int:
        return int(self.resolution.split("x")[1])

    @property
    def bufsize(self) -> str:
        """Rate-control buffer: twice the video bitrate."""
        return f"{int(self.video_bitrate.rstrip('k')) * 2}k"


QUALITY_PRESETS: dict[str, QualitySettings] = {
    "high": QualitySettings(
        video_bitrate="5000k",
        audio_bitrate="192k",
        resolution="1920x1080",
        crf=20,
        preset="slow",
    ),
    "medium": QualitySettings(
        video_bitrate="3000k",
        audio_bitrate="128k",
        resolution="1280x720",
        crf=23,
        preset="medium",
    ),
    "low": QualitySettings(
        video_bitrate="1500k",
        audio_bitrate="96k",
        resolution="854x480",
        crf=26,
        preset="fast",
    ),
}

COLOR_GRADING_FILTERS: dict[str, str] = {
    "warm": "eq=saturation=1.1:brightness=0.05:contrast=1.05",
    "cool": "eq=saturation=0.9:brightness=0.02:contrast=1.1",
    "natural": "eq=saturation=1.0:brightness=0:contrast=1.0",
    "cinematic": "eq=saturation=1.15:brightness=-0.05:contrast=1.1:gamma=1.05",
}

OVERLAY_POSITIONS: dict[str, str] = {
    "top": f"x=(w-text_w)/2:y={TEXT_MARGIN}",
    "center": "x=(w-text_w)/2:y=(h-text_h)/2",
    "bottom": f"x=(w-text_w)/2:y=h-th-{TEXT_MARGIN}",
    "top-left": f"x={TEXT_MARGIN}:y={TEXT_MARGIN}",
    "top-right": f"x=w-tw-{TEXT_MARGIN}:y={TEXT_MARGIN}",
    "bottom-left": f"x={TEXT_MARGIN}:y=h-th-{TEXT_MARGIN}",
    "bottom-right": f"x=w-tw-{TEXT_MARGIN}:y=h-th-{TEXT_MARGIN}",
}


def get_quality_settings(quality: Quality) -> QualitySettings:
    """Resolve a quality tier. Unknown tiers raise KeyError."""
    return QUALITY_PRESETS[quality]


def format_duration(seconds: float) -> str:
    """Human label for a duration, e.g. "8 Hours" or "30 Minutes"."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)

    if hours > 0:
        return f"{hours} Hour{'s' if hours > 1 else ''}"
    return f"{minutes} Minute{'s' if minutes > 1 else ''}"


def fade_overhead(options: VideoGenerationOptions, fade_duration: float) -> float:
    """Seconds consumed by the enabled fades."""
    return fade_duration * (int(options.fade_in) + int(options.fade_out))


# ============================================================================
# Video filters
# ============================================================================


def build_scale_pad_filters(quality: QualitySettings) -> list[str]:
    """Fit the source inside the frame and letterbox the rest."""
    w, h = quality.width, quality.height
    return [
        f"scale={w}:{h}:force_original_aspect_ratio=decrease",
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:color=black",
    ]


def build_video_filters(
    options: VideoGenerationOptions,
    quality: QualitySettings,
    fade_duration: float = 2.0,
) -> list[str]:
    """Scale/pad, color grading and fades. Looping is done at input level."""
    filters = build_scale_pad_filters(quality)

    if options.color_grading:
        filters.append(
            COLOR_GRADING_FILTERS.get(options.color_grading, COLOR_GRADING_FILTERS["natural"])
        )

    if options.fade_in:
        filters.append(f"fade=t=in:st=0:d={format_seconds(fade_duration)}")
    if options.fade_out:
        start = options.target_duration - fade_duration
        filters.append(f"fade=t=out:st={format_seconds(start)}:d={format_seconds(fade_duration)}")

    return filters


def escape_drawtext(text: str) -> str:
    """Escape a value for the filter option parser (``key=value:key=value``)."""
    return text.replace("\\", "\\\\").replace("'", "\\'").replace(":", "\\:")


def quote_filter_arg(value: str) -> str:
    """Single-quote an option value for the filtergraph parser.

    Quotes cannot be escaped inside a quoted span, so each ``'`` closes the
    span, is emitted as ``\\'`` and reopens it.
    """
    return "'" + value.replace("'", "'\\''") + "'"


def format_seconds(seconds: float) -> str:
    """Fixed millisecond precision for -t and filter timestamps."""
    return f"{seconds:.3f}"


def build_text_overlay(
    text: str,
    position: OverlayPosition | str,
    font_size: int = 48,
    font_color: str = "white",
    background_color: str | None = None,
    opacity: float = 1.0,
    font_file: str | None = None,
    enable: str | None = None,
    y_override: str | None = None,
) -> str:
    """Build a single drawtext filter.

    Without ``font_file`` ffmpeg falls back to its default font lookup.
    """
    pos = OVERLAY_POSITIONS.get(position, OVERLAY_POSITIONS["center"])
    if y_override is not None:
        pos = pos.split(":y=")[0] + f":y={y_override}"

    parts = [f"drawtext=text={quote_filter_arg(escape_drawtext(text))}", "expansion=none"]
    if font_file:
        parts.append(f"fontfile={quote_filter_arg(escape_drawtext(font_file))}")
    parts.append(f"fontsize={font_size}")
    parts.append(f"fontcolor={font_color}@{opacity:g}")
    if background_color:
        # Colors may carry their own alpha, e.g. "black@0.6"
        box_color = background_color if "@" in background_color else f"{background_color}@{opacity:g}"
        parts.append(f"box=1:boxcolor={box_color}:boxborderw=10")
    parts.append(pos)
    if enable:
        parts.append(f"enable='{enable}'")
    return ":".join(parts)


def _overlay_enable_expr(overlay: VideoOverlay, target_duration: float) -> str | None:
    if overlay.start_time is None and not overlay.duration:
        return None
    start = overlay.start_time or 0.0
    end = start + overlay.duration if overlay.duration else target_duration
    return f"between(t,{format_seconds(start)},{format_seconds(end)})"


def build_overlay_filters(
    options: VideoGenerationOptions,
    watermark_text: str = "Created with Fluet",
    font_file: str | None = None,
) -> list[str]:
    """All drawtext filters requested by the options, in drawing order."""
    overlays: list[str] = []

    # Title, centered at the top
    if options.title:
        overlays.append(
            build_text_overlay(
                options.title, "top", TITLE_FONT_SIZE, "white", "black@0.6", 1.0, font_file
            )
        )

    # Subtitle, just beneath the title
    if options.subtitle:
        subtitle_y = (
            str(TEXT_MARGIN + TITLE_FONT_SIZE + SUBTITLE_GAP) if options.title else None
        )
        overlays.append(
            build_text_overlay(
                options.subtitle,
                "top",
                36,
                "#E0E0E0",
                None,
                0.9,
                font_file,
                y_override=subtitle_y,
            )
        )

    if options.show_duration:
        overlays.append(
            build_text_overlay(
                format_duration(options.target_duration),
                "top-right",
                32,
                "white",
                "black@0.5",
                0.8,
                font_file,
            )
        )

    if options.show_watermark:
        overlays.append(
            build_text_overlay(
                watermark_text, "bottom-right", 24, "white", "black@0.4", 0.6, font_file
            )
        )

    for overlay in options.overlays:
        if not overlay.text:
            continue
        overlays.append(
            build_text_overlay(
                overlay.text,
                overlay.position,
                overlay.font_size or 48,
                overlay.font_color or "white",
                overlay.background_color,
                overlay.opacity if overlay.opacity is not None else 1.0,
                font_file,
                enable=_overlay_enable_expr(overlay, options.target_duration),
            )
        )

    return overlays


def build_video_filter_chain(
    options: VideoGenerationOptions,
    quality: QualitySettings,
    settings: Settings | None = None,
) -> str:
    """Full ``-vf`` chain. Never returns an empty string.

    Raises:
        FilterGraphError: If no filter could be produced at all
    """
    settings = settings or get_settings()

    filters = build_video_filters(options, quality, settings.fade_duration_seconds)

    if settings.text_overlays_enabled:
        filters.extend(
            build_overlay_filters(
                options,
                watermark_text=settings.watermark_text,
                font_file=settings.overlay_font_file or None,
            )
        )

    chain = ",".join(f for f in filters if f.strip())
    if not chain:
        chain = ",".join(build_scale_pad_filters(quality))
    if not chain:
        raise FilterGraphError()
    return chain


# ============================================================================
# Audio filters
# ============================================================================


def build_audio_filter_chain(
    target_duration: float,
    fade_in: bool = True,
    fade_out: bool = True,
    fade_duration: float = 2.0,
) -> str:
    """Filter-level loop plus fades, mirroring the video fade toggles."""
    filters = ["aloop=loop=-1:size=2e+09"]
    if fade_in:
        filters.append(f"afade=t=in:st=0:d={format_seconds(fade_duration)}")
    if fade_out:
        start = target_duration - fade_duration
        filters.append(f"afade=t=out:st={format_seconds(start)}:d={format_seconds(fade_duration)}")
    return ",".join(filters)
