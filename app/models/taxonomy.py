"""
Fixed scoring taxonomy: three spider modes, six axes each.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple


class SpiderMode(str, Enum):
    """Evaluation lens over a manuscript."""

    EDITORIAL = "editorial"
    GENRE_FIT = "genreFit"
    MARKET_NEXT_WEEK = "marketNextWeek"


class AxisKey(str, Enum):
    """One of the 18 scoring dimensions."""

    # editorial
    NARRATIVE_MOMENTUM = "narrativeMomentum"
    CHARACTER_VOICE = "characterVoice"
    PACING_CONTROL = "pacingControl"
    CLARITY = "clarity"
    ORIGINALITY = "originality"
    THEME_COHESION = "themeCohesion"
    # genreFit
    GENRE_TROPES = "genreTropes"
    READER_PROMISE = "readerPromise"
    VOICE_MATCH = "voiceMatch"
    STRUCTURE_FIT = "structureFit"
    POV_CONSISTENCY = "povConsistency"
    AGE_CATEGORY_FIT = "ageCategoryFit"
    # marketNextWeek
    HOOK_STRENGTH = "hookStrength"
    PACKAGING_CLARITY = "packagingClarity"
    COMPS_FIT = "compsFit"
    RETENTION = "retention"
    SHAREABILITY = "shareability"
    SPEED_TO_SHELF = "speedToShelf"


class AxisMeta(NamedTuple):
    key: AxisKey
    label: str


AXIS_META: Dict[SpiderMode, List[AxisMeta]] = {
    SpiderMode.EDITORIAL: [
        AxisMeta(AxisKey.NARRATIVE_MOMENTUM, "Narrative momentum"),
        AxisMeta(AxisKey.CHARACTER_VOICE, "Character voice consistency"),
        AxisMeta(AxisKey.PACING_CONTROL, "Pacing control"),
        AxisMeta(AxisKey.CLARITY, "Line-level clarity"),
        AxisMeta(AxisKey.ORIGINALITY, "Originality"),
        AxisMeta(AxisKey.THEME_COHESION, "Theme cohesion"),
    ],
    SpiderMode.GENRE_FIT: [
        AxisMeta(AxisKey.GENRE_TROPES, "Use of genre tropes"),
        AxisMeta(AxisKey.READER_PROMISE, "Reader promise"),
        AxisMeta(AxisKey.VOICE_MATCH, "Voice matches genre"),
        AxisMeta(AxisKey.STRUCTURE_FIT, "Structure fit"),
        AxisMeta(AxisKey.POV_CONSISTENCY, "POV consistency"),
        AxisMeta(AxisKey.AGE_CATEGORY_FIT, "Age/category fit"),
    ],
    SpiderMode.MARKET_NEXT_WEEK: [
        AxisMeta(AxisKey.HOOK_STRENGTH, "Hook strength"),
        AxisMeta(AxisKey.PACKAGING_CLARITY, "Packaging clarity"),
        AxisMeta(AxisKey.COMPS_FIT, "Comparable titles fit"),
        AxisMeta(AxisKey.RETENTION, "Reader retention signals"),
        AxisMeta(AxisKey.SHAREABILITY, "Shareability"),
        AxisMeta(AxisKey.SPEED_TO_SHELF, "Speed to shelf"),
    ],
}

# Flattened views, in taxonomy order
ALL_AXIS_KEYS: List[str] = [meta.key.value for mode in SpiderMode for meta in AXIS_META[mode]]
KNOWN_AXIS_KEYS: FrozenSet[str] = frozenset(ALL_AXIS_KEYS)


def mode_keys(mode: SpiderMode) -> List[str]:
    """Axis key strings for *mode*, in taxonomy order."""
    return [meta.key.value for meta in AXIS_META[mode]]


def axis_label(mode: SpiderMode, key: str) -> str:
    """Default label for *key* within *mode*; empty string if it is not in the mode."""
    for meta in AXIS_META[mode]:
        if meta.key.value == key:
            return meta.label
    return ""


def taxonomy_as_json_dict() -> Dict[str, List[Dict[str, str]]]:
    """The taxonomy in the wire shape used inside prompts."""
    return {
        mode.value: [{"key": meta.key.value, "label": meta.label} for meta in AXIS_META[mode]]
        for mode in SpiderMode
    }
