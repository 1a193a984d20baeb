"""Static audio and visual asset catalog.

Paths are relative to the configured assets root (``public`` by default).
Entries never change at runtime; regenerate them with
``loopcast.services.asset_scanner`` when files are added.
"""

from loopcast.schemas.asset import AudioAsset, VisualAsset

AUDIO_ASSETS: tuple[AudioAsset, ...] = (
    AudioAsset(
        id="rain_heavy_1",
        name="Heavy Rain Loop",
        path="/assets/audio/background/rain/rain_heavy_1.wav",
        type="rain",
        loopable=True,
    ),
    AudioAsset(
        id="rain_light_1",
        name="Light Rain Loop",
        path="/assets/audio/background/rain/rain_light_1.wav",
        type="rain",
        loopable=True,
    ),
    AudioAsset(
        id="white_noise_1",
        name="White Noise",
        path="/assets/audio/background/sleep/white_noise.wav",
        type="white_noise",
        loopable=True,
    ),
    AudioAsset(
        id="ocean_waves_1",
        name="Ocean Waves",
        path="/assets/audio/background/ambient/ocean_waves.wav",
        type="ambient",
        loopable=True,
    ),
    AudioAsset(
        id="thunderstorm_1",
        name="Thunderstorm",
        path="/assets/audio/background/sleep/thunderstorm.wav",
        type="sleep",
        loopable=True,
    ),
)

VISUAL_ASSETS: tuple[VisualAsset, ...] = (
    VisualAsset(
        id="rain_window_1",
        name="Rain on Window",
        path="/assets/visuals/backgrounds/rain/rain_window_1.mp4",
        type="rain",
        loopable=True,
        resolution="1080p",
    ),
    VisualAsset(
        id="forest_rain_1",
        name="Forest Rain",
        path="/assets/visuals/backgrounds/rain/forest_rain_1.mp4",
        type="rain",
        loopable=True,
        resolution="1080p",
    ),
    VisualAsset(
        id="ocean_visual_1",
        name="Ocean Waves",
        path="/assets/visuals/backgrounds/nature/ocean_visual_1.mp4",
        type="nature",
        loopable=True,
        resolution="1080p",
    ),
    VisualAsset(
        id="abstract_1",
        name="Abstract Background",
        path="/assets/visuals/backgrounds/abstract/gradient_1.mp4",
        type="abstract",
        loopable=True,
        resolution="1080p",
    ),
)

_AUDIO_BY_ID: dict[str, AudioAsset] = {asset.id: asset for asset in AUDIO_ASSETS}
_VISUAL_BY_ID: dict[str, VisualAsset] = {asset.id: asset for asset in VISUAL_ASSETS}


def get_audio_asset(asset_id: str) -> AudioAsset | None:
    """Get audio asset by ID, or None if it is not in the catalog."""
    return _AUDIO_BY_ID.get(asset_id)


def get_visual_asset(asset_id: str) -> VisualAsset | None:
    """Get visual asset by ID, or None if it is not in the catalog."""
    return _VISUAL_BY_ID.get(asset_id)
