"""Asset matching for composition requests.

Content types arrive as loosely structured strings from the scheduling UI.
``classify_content_type`` maps them onto an ``AssetFamily`` with ordered
substring rules; anything unrecognized falls back to ``AssetFamily.ANY``,
which draws from the whole catalog instead of failing.

Affinity rules:
    RAIN    rain audio        <-> rain visuals
    SLEEP   sleep/white_noise <-> abstract/nature visuals
    AMBIENT ambient audio     <-> nature visuals
    ANY     any audio         <-> any visual
"""

import logging
import random
from collections.abc import Sequence
from enum import Enum

from loopcast.schemas.asset import AssetPair, AudioAsset, ContentType, VisualAsset
from loopcast.services.asset_catalog import (
    AUDIO_ASSETS,
    VISUAL_ASSETS,
    get_audio_asset,
    get_visual_asset,
)

logger = logging.getLogger(__name__)


class AssetFamily(Enum):
    """Compatible audio/visual groupings."""

    RAIN = "rain"
    SLEEP = "sleep"
    AMBIENT = "ambient"
    ANY = "any"


FAMILY_AUDIO_TYPES: dict[AssetFamily, frozenset[str]] = {
    AssetFamily.RAIN: frozenset({"rain"}),
    AssetFamily.SLEEP: frozenset({"sleep", "white_noise"}),
    AssetFamily.AMBIENT: frozenset({"ambient"}),
}

FAMILY_VISUAL_TYPES: dict[AssetFamily, frozenset[str]] = {
    AssetFamily.RAIN: frozenset({"rain"}),
    AssetFamily.SLEEP: frozenset({"abstract", "nature"}),
    AssetFamily.AMBIENT: frozenset({"nature"}),
}

DEFAULT_TEMPLATE = "sleep_template"


def _as_text(content_type: str | ContentType) -> str:
    if isinstance(content_type, ContentType):
        return content_type.value
    return content_type


def classify_content_type(content_type: str | ContentType) -> AssetFamily:
    """Classify a content type label. Rules are checked in order."""
    text = _as_text(content_type)
    if "rain" in text:
        return AssetFamily.RAIN
    if "sleep" in text or "white_noise" in text:
        return AssetFamily.SLEEP
    if "ambient" in text:
        return AssetFamily.AMBIENT
    return AssetFamily.ANY


def derive_template_name(content_type: str | ContentType) -> str:
    """Pick the overlay template name for a content type."""
    text = _as_text(content_type)
    if "facts" in text or "educational" in text:
        return "facts_template"
    if "ambient" in text:
        return "ambient_template"
    return DEFAULT_TEMPLATE


def get_assets_for_family(
    family: AssetFamily,
    audio_assets: Sequence[AudioAsset] = AUDIO_ASSETS,
    visual_assets: Sequence[VisualAsset] = VISUAL_ASSETS,
) -> tuple[list[AudioAsset], list[VisualAsset]]:
    """Filter the catalogs down to one family (ANY keeps everything)."""
    if family is AssetFamily.ANY:
        return list(audio_assets), list(visual_assets)

    audio_types = FAMILY_AUDIO_TYPES[family]
    visual_types = FAMILY_VISUAL_TYPES[family]
    return (
        [a for a in audio_assets if a.type in audio_types],
        [v for v in visual_assets if v.type in visual_types],
    )


def get_random_asset_pair(
    content_type: str | ContentType,
    audio_assets: Sequence[AudioAsset] = AUDIO_ASSETS,
    visual_assets: Sequence[VisualAsset] = VISUAL_ASSETS,
    rng: random.Random | None = None,
) -> AssetPair | None:
    """Pick a random compatible pair for a content type.

    Returns None only when the family (or, for the fallback, the whole
    catalog) has no audio or no visual asset.
    """
    family = classify_content_type(content_type)
    matching_audio, matching_visual = get_assets_for_family(
        family, audio_assets, visual_assets
    )

    if not matching_audio or not matching_visual:
        logger.warning(
            f"[ASSETS] No assets for content type {_as_text(content_type)!r} "
            f"(family={family.value}, audio={len(matching_audio)}, visual={len(matching_visual)})"
        )
        return None

    chooser = rng or random
    pair = AssetPair(
        audio=chooser.choice(matching_audio),
        visual=chooser.choice(matching_visual),
        template=derive_template_name(content_type),
    )
    logger.debug(
        f"[ASSETS] Matched {pair.audio.id} + {pair.visual.id} "
        f"for {_as_text(content_type)!r} ({pair.template})"
    )
    return pair


def get_asset_pair(
    audio_id: str,
    visual_id: str,
    template: str = DEFAULT_TEMPLATE,
) -> AssetPair | None:
    """Look up a caller-specified pair, or None if either id is unknown."""
    audio = get_audio_asset(audio_id)
    visual = get_visual_asset(visual_id)

    if audio is None or visual is None:
        return None

    return AssetPair(audio=audio, visual=visual, template=template)
