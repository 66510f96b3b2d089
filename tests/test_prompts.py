"""Tests for the prompt builders and the taxonomy they embed."""
import json

from app.models.taxonomy import (
    ALL_AXIS_KEYS,
    AXIS_META,
    SpiderMode,
    axis_label,
    mode_keys,
    taxonomy_as_json_dict,
)
from app.services.prompts import build_extraction_prompt, build_scoring_prompt


def _extraction_prompt(text: str = "Once upon a time.") -> str:
    return build_extraction_prompt(
        text=text,
        snippet_count=6,
        axis_keys=ALL_AXIS_KEYS,
        sentence_length_buckets={"upTo5": 1, "sixTo10": 0},
        pronoun_profile={"firstPerson": 2},
        pos_ratios={"nouns": 0.25},
    )


def _scoring_prompt(sample: str = "Once upon a time.") -> str:
    return build_scoring_prompt(
        text_sample=sample,
        detected_genre="General Fiction",
        detected_subgenre="Contemporary",
        subgenre_candidates=["Contemporary", "Literary"],
        language_stats_summary={"posRatios": {"nouns": 0.25}},
    )


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

def test_taxonomy_has_six_distinct_axes_per_mode():
    for mode in SpiderMode:
        keys = mode_keys(mode)
        assert len(keys) == 6
        assert len(set(keys)) == 6
    assert len(ALL_AXIS_KEYS) == 18
    assert len(set(ALL_AXIS_KEYS)) == 18


def test_axis_label_lookup():
    assert axis_label(SpiderMode.EDITORIAL, "clarity") == "Line-level clarity"
    assert axis_label(SpiderMode.EDITORIAL, "hookStrength") == ""


def test_taxonomy_json_shape():
    data = taxonomy_as_json_dict()
    assert list(data) == ["editorial", "genreFit", "marketNextWeek"]
    assert data["marketNextWeek"][0] == {"key": "hookStrength", "label": "Hook strength"}
    assert len(data["genreFit"]) == len(AXIS_META[SpiderMode.GENRE_FIT])


# ---------------------------------------------------------------------------
# Extraction prompt
# ---------------------------------------------------------------------------

def test_extraction_prompt_is_deterministic():
    assert _extraction_prompt() == _extraction_prompt()


def test_extraction_prompt_lists_axes_and_snippet_count():
    prompt = _extraction_prompt()
    assert "Keep exactly 6 snippets total" in prompt
    assert ", ".join(ALL_AXIS_KEYS) in prompt
    assert "Return STRICT JSON only" in prompt


def test_extraction_prompt_embeds_text_and_compact_stats():
    prompt = _extraction_prompt("The lamp went dark.")
    assert "The lamp went dark." in prompt
    assert '{"upTo5":1,"sixTo10":0}' in prompt
    assert '{"firstPerson":2}' in prompt
    assert '{"nouns":0.25}' in prompt
    # JSON braces in the shape example survive formatting
    assert '"evidenceIndex": [' in prompt


# ---------------------------------------------------------------------------
# Scoring prompt
# ---------------------------------------------------------------------------

def test_scoring_prompt_is_deterministic():
    assert _scoring_prompt() == _scoring_prompt()


def test_scoring_prompt_embeds_taxonomy_and_hints():
    prompt = _scoring_prompt()
    assert json.dumps(taxonomy_as_json_dict(), indent=2) in prompt
    assert "Detected genre hint: General Fiction" in prompt
    assert "Subgenre options: Contemporary, Literary" in prompt
    assert 'Language stats summary: {"posRatios":{"nouns":0.25}}' in prompt


def test_scoring_prompt_uses_given_sample_verbatim():
    sample = "x" * 3000
    prompt = _scoring_prompt(sample)
    assert prompt.rstrip().endswith(sample)
