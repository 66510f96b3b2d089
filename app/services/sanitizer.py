"""
Coerce untrusted model output into strictly-typed, range-clamped data.

Apart from ``parse_model_json`` (which raises ``ValueError`` on unparseable
text), nothing in this module raises: every cleaner returns a structurally
valid value, substituting deterministic fallbacks for anything invalid.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import math
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from app.models.schemas import (
    EvidenceSnippet,
    Highlights,
    LanguageStats,
    LlmSummary,
    PosRatios,
    PronounProfile,
    SentenceLengthBuckets,
    SignalSummary,
    SpiderAxisScore,
    SpiderByMode,
)
from app.models.taxonomy import AXIS_META, KNOWN_AXIS_KEYS, SpiderMode, axis_label, mode_keys

logger = logging.getLogger(__name__)

EVIDENCE_TEXT_MAX_CHARS = 360
TITLE_MAX_CHARS = 140
DEFAULT_CONFIDENCE = 0.4
FALLBACK_CONFIDENCE = 0.35

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ParseOutcome:
    """Either ``ok`` with a parsed JSON object in ``value``, or a ``reason`` it is invalid."""

    ok: bool
    value: Dict[str, Any] = dataclasses.field(default_factory=dict)
    reason: str = ""

    @classmethod
    def valid(cls, value: Dict[str, Any]) -> "ParseOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def invalid(cls, reason: str) -> "ParseOutcome":
        return cls(ok=False, reason=reason)


def parse_model_json(raw: str) -> Any:
    """
    Parse JSON out of loosely formatted model text.

    Strips Markdown code fences, then takes the span from the first ``{`` to
    the last ``}`` (or the whole trimmed text if there are no braces).

    Raises:
        ValueError: the candidate text is not valid JSON.
    """
    without_fences = _FENCE_RE.sub("", raw or "").strip()
    match = _OBJECT_RE.search(without_fences)
    candidate = match.group(0) if match else without_fences
    return json.loads(candidate)


def try_parse_model_json(raw: str) -> ParseOutcome:
    """``parse_model_json`` as a ParseOutcome; non-object roots are invalid."""
    try:
        parsed = parse_model_json(raw)
    except ValueError as exc:
        return ParseOutcome.invalid(f"invalid JSON: {exc}")
    if not isinstance(parsed, dict):
        return ParseOutcome.invalid(f"expected a JSON object, got {type(parsed).__name__}")
    return ParseOutcome.valid(parsed)


# ---------------------------------------------------------------------------
# Scalar coercion helpers
# ---------------------------------------------------------------------------

def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp into [lo, hi]; non-finite values collapse to *lo*."""
    if not math.isfinite(value):
        return lo
    return max(lo, min(hi, value))


def to_float(value: Any) -> Optional[float]:
    """Parse *value* as a finite float, or None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_str(value: Any) -> str:
    if value is None or value is False:
        return ""
    return str(value)


def _to_offset(value: Any) -> int:
    number = to_float(value)
    return max(0, int(number)) if number is not None else 0


def safe_string_list(value: Any) -> List[str]:
    """Coerce *value* to a list of non-blank strings; anything but a list gives []."""
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------

def clean_evidence(raw: Any) -> List[EvidenceSnippet]:
    """Keep only snippets with non-empty text and one of the 18 known axis keys."""
    if not isinstance(raw, list):
        return []

    snippets: List[EvidenceSnippet] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        axis_key = _to_str(item.get("axisKey")).strip()
        text = _to_str(item.get("text"))[:EVIDENCE_TEXT_MAX_CHARS]
        if axis_key not in KNOWN_AXIS_KEYS or not text.strip():
            continue
        snippets.append(
            EvidenceSnippet(
                id=_to_str(item.get("id")) or str(uuid.uuid4()),
                axis_key=axis_key,
                start_char=_to_offset(item.get("startChar")),
                end_char=_to_offset(item.get("endChar")),
                text=text,
                note=_to_str(item.get("note")),
            )
        )

    dropped = len(raw) - len(snippets)
    if dropped:
        logger.debug("clean_evidence: dropped %d invalid snippets", dropped)
    return snippets


# ---------------------------------------------------------------------------
# Spider scores
# ---------------------------------------------------------------------------

def fallback_spider(mode: SpiderMode, base_score: float) -> List[SpiderAxisScore]:
    """Deterministic scores for *mode*: +0.3 on every third axis, -0.2 elsewhere."""
    return [
        SpiderAxisScore(
            key=meta.key,
            label=meta.label,
            score=clamp(base_score + (0.3 if idx % 3 == 0 else -0.2), 0.0, 5.0),
            confidence=FALLBACK_CONFIDENCE,
        )
        for idx, meta in enumerate(AXIS_META[mode])
    ]


def _clean_mode(mode: SpiderMode, raw_entries: Any) -> Optional[List[SpiderAxisScore]]:
    """Cleaned scores for *mode* in taxonomy order, or None if they don't cover it exactly."""
    if not isinstance(raw_entries, list):
        return None

    expected = mode_keys(mode)
    by_key: Dict[str, SpiderAxisScore] = {}
    for entry in raw_entries:
        if not isinstance(entry, dict):
            continue
        key = _to_str(entry.get("key")).strip()
        if key not in expected:
            continue
        if key in by_key:
            return None  # duplicated axis

        label = entry.get("label")
        score = to_float(entry.get("score"))
        raw_confidence = entry.get("confidence")
        confidence = DEFAULT_CONFIDENCE if raw_confidence is None else to_float(raw_confidence)

        by_key[key] = SpiderAxisScore(
            key=key,
            label=str(label) if label is not None and str(label).strip() else axis_label(mode, key),
            score=clamp(score if score is not None else 0.0, 0.0, 5.0),
            confidence=clamp(confidence if confidence is not None else 0.0, 0.0, 1.0),
        )

    if len(by_key) != len(expected):
        return None
    return [by_key[key] for key in expected]


def clean_spider(raw: Any, fallback_score: float) -> SpiderByMode:
    """
    One six-entry list per mode.

    A mode is trusted only if its cleaned entries cover exactly that mode's
    axes; otherwise the whole mode is replaced by ``fallback_spider``.
    """
    by_mode = raw if isinstance(raw, dict) else {}
    cleaned: Dict[SpiderMode, List[SpiderAxisScore]] = {}
    for mode in SpiderMode:
        scores = _clean_mode(mode, by_mode.get(mode.value))
        if scores is None:
            if by_mode.get(mode.value) is not None:
                logger.warning(
                    "clean_spider: model output for %s is incomplete, using fallback scores",
                    mode.value,
                )
            scores = fallback_spider(mode, fallback_score)
        cleaned[mode] = scores

    return SpiderByMode(
        editorial=cleaned[SpiderMode.EDITORIAL],
        genre_fit=cleaned[SpiderMode.GENRE_FIT],
        market_next_week=cleaned[SpiderMode.MARKET_NEXT_WEEK],
    )


# ---------------------------------------------------------------------------
# Summary / highlights
# ---------------------------------------------------------------------------

FALLBACK_SUMMARY: Dict[str, List[str]] = {
    "synopsis": ["No synopsis available. Provide at least a few paragraphs to enable summarization."],
    "comps": ["Add comparable titles to position this manuscript."],
    "red_flags": ["Limited evidence; provide more pages for stronger signal."],
    "market_positioning": ["Insufficient data to recommend positioning."],
}

_SUMMARY_WIRE_KEYS = {
    "synopsis": "synopsis",
    "comps": "comps",
    "red_flags": "redFlags",
    "market_positioning": "marketPositioning",
}


def fallback_summary() -> LlmSummary:
    return LlmSummary(**{field: list(lines) for field, lines in FALLBACK_SUMMARY.items()})


def clean_summary(raw: Any) -> LlmSummary:
    """Each summary array as non-blank strings, back-filled with its canned sentence."""
    source = raw if isinstance(raw, dict) else {}
    fields: Dict[str, List[str]] = {}
    for field, wire_key in _SUMMARY_WIRE_KEYS.items():
        fields[field] = safe_string_list(source.get(wire_key)) or list(FALLBACK_SUMMARY[field])
    return LlmSummary(**fields)


def clean_highlights(raw: Any) -> Highlights:
    source = raw if isinstance(raw, dict) else {}
    return Highlights(
        strengths=safe_string_list(source.get("strengths")),
        risks=safe_string_list(source.get("risks")),
    )


# ---------------------------------------------------------------------------
# Language stats
# ---------------------------------------------------------------------------

# wire key -> (LanguageStats attribute, group model)
_LANGUAGE_STAT_GROUPS: Dict[str, Tuple[str, Type[BaseModel]]] = {
    "posRatios": ("pos_ratios", PosRatios),
    "sentenceLengthBuckets": ("sentence_length_buckets", SentenceLengthBuckets),
    "pronounProfile": ("pronoun_profile", PronounProfile),
    "nominalizationSignals": ("nominalization_signals", SignalSummary),
    "passiveVoiceSignals": ("passive_voice_signals", SignalSummary),
}


def clean_language_stats(raw: Any, local: Optional[LanguageStats] = None) -> Dict[str, Any]:
    """
    Validated model-supplied language-stat groups, keyed by LanguageStats attribute.

    With *local*, each group is validated over the local values of that group,
    so fields the model leaves out keep their local counts. Groups that are
    missing or fail validation are left out, so merging the result over local
    stats keeps the local value for them.
    """
    if not isinstance(raw, dict):
        return {}

    groups: Dict[str, Any] = {}
    for wire_key, (attr, model_cls) in _LANGUAGE_STAT_GROUPS.items():
        value = raw.get(wire_key)
        if not isinstance(value, dict):
            continue
        base = getattr(local, attr).model_dump(by_alias=True) if local is not None else {}
        try:
            groups[attr] = model_cls.model_validate({**base, **value})
        except ValidationError as exc:
            logger.debug(
                "clean_language_stats: discarding %s (%d errors)", wire_key, exc.error_count()
            )

    reading_ease = to_float(raw.get("readingEase"))
    if reading_ease is not None:
        groups["reading_ease"] = reading_ease
    return groups


def merge_language_stats(local: LanguageStats, model_groups: Dict[str, Any]) -> LanguageStats:
    """Shallow merge: model-supplied groups replace the local ones."""
    if not model_groups:
        return local
    return local.model_copy(update=model_groups)


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

def pick_title(text: str, file_name: str) -> str:
    """First non-empty line of *text*, else the file name, capped at 140 chars."""
    for line in re.split(r"\r?\n", text):
        if line.strip():
            return line.strip()[:TITLE_MAX_CHARS]
    return (file_name or "Untitled manuscript")[:TITLE_MAX_CHARS]
