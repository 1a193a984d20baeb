"""Asset folder scanner.

Walks ``<root>/assets`` for audio and video loops and turns what it finds
into catalog entries, so new files only need to be dropped into the right
category folder.

Layout:
    assets/audio/background/{rain,sleep,ambient}/*.{wav,mp3,flac,m4a}
    assets/visuals/backgrounds/{rain,nature,abstract}/*.{mp4,mov,avi,webm}
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from loopcast.schemas.asset import AudioAsset, VisualAsset

logger = logging.getLogger(__name__)

AudioCategory = Literal["rain", "sleep", "ambient"]
VisualCategory = Literal["rain", "nature", "abstract"]

AUDIO_CATEGORIES: tuple[AudioCategory, ...] = ("rain", "sleep", "ambient")
VISUAL_CATEGORIES: tuple[VisualCategory, ...] = ("rain", "nature", "abstract")

AUDIO_EXTENSIONS = (".wav", ".mp3", ".flac", ".m4a")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".webm")


@dataclass
class ScannedAsset:
    """A media file found under the assets tree."""

    filename: str
    path: str  # Catalog-relative path with a leading slash
    kind: Literal["audio", "video"]
    category: str
    format: str


@dataclass
class ScanResult:
    audio: list[ScannedAsset] = field(default_factory=list)
    video: list[ScannedAsset] = field(default_factory=list)


def _scan_folder(
    root: Path,
    relative_dir: str,
    extensions: tuple[str, ...],
    kind: Literal["audio", "video"],
    category: str,
) -> list[ScannedAsset]:
    base_path = root / relative_dir
    if not base_path.is_dir():
        logger.warning(f"[ASSETS] Could not scan {kind} directory: {base_path}")
        return []

    assets: list[ScannedAsset] = []
    try:
        entries = sorted(base_path.iterdir())
    except OSError as e:
        logger.warning(f"[ASSETS] Could not read {base_path}: {e}")
        return []

    for entry in entries:
        if not entry.is_file():
            continue
        suffix = entry.suffix.lower()
        if suffix not in extensions:
            continue
        assets.append(
            ScannedAsset(
                filename=entry.name,
                path=f"/{relative_dir}/{entry.name}",
                kind=kind,
                category=category,
                format=suffix.lstrip("."),
            )
        )
    return assets


def scan_audio_files(root: str | Path, category: AudioCategory) -> list[ScannedAsset]:
    """Scan one audio category folder."""
    return _scan_folder(
        Path(root),
        f"assets/audio/background/{category}",
        AUDIO_EXTENSIONS,
        "audio",
        category,
    )


def scan_video_files(root: str | Path, category: VisualCategory) -> list[ScannedAsset]:
    """Scan one visual category folder."""
    return _scan_folder(
        Path(root),
        f"assets/visuals/backgrounds/{category}",
        VIDEO_EXTENSIONS,
        "video",
        category,
    )


def scan_all_assets(root: str | Path) -> ScanResult:
    """Scan every audio and visual category below ``root``."""
    result = ScanResult()
    for category in AUDIO_CATEGORIES:
        result.audio.extend(scan_audio_files(root, category))
    for category in VISUAL_CATEGORIES:
        result.video.extend(scan_video_files(root, category))
    logger.info(
        f"[ASSETS] Scanned {root}: {len(result.audio)} audio, {len(result.video)} video"
    )
    return result


def asset_id_from_filename(filename: str) -> str:
    """``Rain-Heavy 2.wav`` -> ``rain_heavy_2``."""
    stem = Path(filename).stem
    return re.sub(r"[^a-zA-Z0-9]", "_", stem).lower()


def asset_name_from_filename(filename: str) -> str:
    """``rain_heavy-2.wav`` -> ``Rain Heavy 2``."""
    stem = Path(filename).stem
    return re.sub(r"[_-]", " ", stem).title()


def build_catalog(scanned: ScanResult) -> tuple[list[AudioAsset], list[VisualAsset]]:
    """Turn scan results into catalog entries."""
    audio_assets = [
        AudioAsset(
            id=asset_id_from_filename(item.filename),
            name=asset_name_from_filename(item.filename),
            path=item.path,
            type=item.category if item.category in AUDIO_CATEGORIES else "white_noise",
            loopable=True,
        )
        for item in scanned.audio
    ]
    visual_assets = [
        VisualAsset(
            id=asset_id_from_filename(item.filename),
            name=asset_name_from_filename(item.filename),
            path=item.path,
            type=item.category,
            loopable=True,
            resolution="1080p",
        )
        for item in scanned.video
    ]
    return audio_assets, visual_assets
