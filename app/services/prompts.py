"""
Prompt templates for the two manuscript model calls.

Templates are module-level constants so they can be tuned without touching
logic code. Builders are pure: identical inputs give identical prompt text.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping

from app.models.taxonomy import taxonomy_as_json_dict


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_EXTRACTION_PROMPT = """\
You are a production-grade text extractor for publishing editors.
Return STRICT JSON only. No prose, no code fences.

TASKS:
1) Provide evidence snippets tied to the provided axis keys. Each snippet should be \
concrete (max 320 chars) and include a short note on why it matters.
2) Provide a compact languageStats object.

Output JSON shape:
{{
  "evidenceIndex": [
    {{
      "id": "string",
      "axisKey": "AxisKey from list",
      "startChar": 0,
      "endChar": 0,
      "text": "verbatim snippet",
      "note": "why this snippet matters for that axis"
    }}
  ],
  "languageStats": {{
    "posRatios": {{
      "nouns": 0,
      "verbs": 0,
      "adjectives": 0,
      "adverbs": 0,
      "dialogue": 0
    }},
    "sentenceLengthBuckets": {{
      "upTo5": 0,
      "sixTo10": 0,
      "elevenTo15": 0,
      "sixteenTo25": 0,
      "over25": 0
    }},
    "pronounProfile": {{
      "firstPerson": 0,
      "secondPerson": 0,
      "thirdPerson": 0,
      "plural": 0,
      "genderNeutral": 0
    }},
    "nominalizationSignals": {{
      "count": 0,
      "examples": ["string", "string"]
    }},
    "passiveVoiceSignals": {{
      "count": 0,
      "examples": ["string"]
    }},
    "readingEase": 0
  }}
}}

Constraints:
- Keep exactly {snippet_count} snippets total (spread across axes when possible).
- Use axisKey from this list only: {axis_keys}.
- Do NOT include markdown or extra keys.

Base text (truncate/clean as needed):
{text}

Pre-computed stats (for reference, keep JSON lean):
- sentenceLengthBuckets: {sentence_length_buckets}
- pronounProfile: {pronoun_profile}
- posRatios: {pos_ratios}
"""

_SCORING_PROMPT = """\
You are an editorial scoring system. Return STRICT JSON only. No prose, no code fences.

Score three radar modes: editorial, genreFit, marketNextWeek. For each axis, produce \
score 0-5 and confidence 0-1 with the exact labels/keys below. Also provide synopsis, \
comps, redFlags, and marketPositioning arrays.

Axis definitions:
{axis_definitions}

Output JSON shape:
{{
  "spiderByMode": {{
    "editorial": [{{ "key": "narrativeMomentum", "label": "...", "score": 0-5, "confidence": 0-1 }}],
    "genreFit": [{{ "key": "genreTropes", "label": "...", "score": 0-5, "confidence": 0-1 }}],
    "marketNextWeek": [{{ "key": "hookStrength", "label": "...", "score": 0-5, "confidence": 0-1 }}]
  }},
  "detectedGenre": "string",
  "detectedSubgenre": "string",
  "subgenreCandidates": ["string"],
  "highlights": {{ "strengths": ["string"], "risks": ["string"] }},
  "llmSummary": {{
    "synopsis": ["string"],
    "comps": ["string"],
    "redFlags": ["string"],
    "marketPositioning": ["string"]
  }}
}}

Constraints:
- Keep labels in English.
- Scores must be numbers 0-5; confidence 0-1.
- If unsure about subgenre, pick the closest and still populate subgenreCandidates.

Detected genre hint: {detected_genre}
Detected subgenre hint: {detected_subgenre}
Subgenre options: {subgenre_options}
Language stats summary: {language_stats}

Text sample (trimmed to ~3k chars):
{text_sample}
"""

PDF_EXTRACTION_INSTRUCTION = (
    "Extract plain text from this PDF. Return only the text content. No markdown."
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def _compact_json(value: Any) -> str:
    """JSON without whitespace, mirroring what a browser's JSON.stringify emits."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_extraction_prompt(
    text: str,
    snippet_count: int,
    axis_keys: Iterable[str],
    sentence_length_buckets: Mapping[str, int],
    pronoun_profile: Mapping[str, int],
    pos_ratios: Mapping[str, float],
) -> str:
    """Prompt for the evidence + language-stats extraction call."""
    return _EXTRACTION_PROMPT.format(
        snippet_count=snippet_count,
        axis_keys=", ".join(axis_keys),
        text=text,
        sentence_length_buckets=_compact_json(dict(sentence_length_buckets)),
        pronoun_profile=_compact_json(dict(pronoun_profile)),
        pos_ratios=_compact_json(dict(pos_ratios)),
    )


def build_scoring_prompt(
    text_sample: str,
    detected_genre: str,
    detected_subgenre: str,
    subgenre_candidates: Iterable[str],
    language_stats_summary: Dict[str, Any],
) -> str:
    """Prompt for the spider-score + summary call."""
    options = ", ".join(subgenre_candidates)
    return _SCORING_PROMPT.format(
        axis_definitions=json.dumps(taxonomy_as_json_dict(), indent=2),
        detected_genre=detected_genre,
        detected_subgenre=detected_subgenre,
        subgenre_options=options or "[]",
        language_stats=_compact_json(language_stats_summary),
        text_sample=text_sample,
    )
