from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

AudioType = Literal["rain", "ambient", "sleep", "white_noise", "voice"]
VisualType = Literal["rain", "nature", "abstract", "template"]
Resolution = Literal["1080p", "720p", "4k"]


class ContentType(str, Enum):
    """Content types accepted from the scheduling UI."""

    RAIN_SOUNDS = "rain_sounds"
    SLEEP_SOUNDS = "sleep_sounds"
    AMBIENT_SOUNDS = "ambient_sounds"
    WHITE_NOISE = "white_noise"
    FACTS = "facts"
    EDUCATIONAL = "educational"


class AudioAsset(BaseModel):
    """A short loopable audio file from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str  # Catalog-relative, e.g. /assets/audio/background/rain/x.wav
    type: AudioType
    duration: float | None = None  # Seconds, when known ahead of probing
    loopable: bool = True


class VisualAsset(BaseModel):
    """A short loopable background video from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str
    type: VisualType
    loopable: bool = True
    resolution: Resolution = "1080p"


class AssetPair(BaseModel):
    """Audio and visual chosen together for one composition job."""

    model_config = ConfigDict(frozen=True)

    audio: AudioAsset
    visual: VisualAsset
    template: str = "sleep_template"
