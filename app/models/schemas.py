"""
Pydantic schemas for request/response validation.

Python attributes are snake_case; the JSON contract is camelCase, produced
by the alias generator on ``CamelModel``.
"""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime

from app.models.taxonomy import AxisKey


class CamelModel(BaseModel):
    """Base model serialising to camelCase keys while accepting either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Spider scores / evidence
# ---------------------------------------------------------------------------

class SpiderAxisScore(CamelModel):
    """Score for one axis in one spider mode."""

    key: AxisKey
    label: str
    score: float = Field(..., ge=0.0, le=5.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class SpiderByMode(CamelModel):
    """Exactly six axis scores per mode."""

    editorial: List[SpiderAxisScore]
    genre_fit: List[SpiderAxisScore]
    market_next_week: List[SpiderAxisScore]


class EvidenceSnippet(CamelModel):
    """A verbatim excerpt tied to one axis."""

    id: str
    axis_key: AxisKey
    start_char: int = 0
    end_char: int = 0
    text: str = Field(..., min_length=1, max_length=360)
    note: str = ""


# ---------------------------------------------------------------------------
# Language statistics
# ---------------------------------------------------------------------------

class PosRatios(CamelModel):
    nouns: float = Field(0.0, ge=0.0, le=1.0)
    verbs: float = Field(0.0, ge=0.0, le=1.0)
    adjectives: float = Field(0.0, ge=0.0, le=1.0)
    adverbs: float = Field(0.0, ge=0.0, le=1.0)
    dialogue: float = Field(0.0, ge=0.0, le=1.0)


class SentenceLengthBuckets(CamelModel):
    up_to_5: int = Field(0, ge=0)
    six_to_10: int = Field(0, ge=0)
    eleven_to_15: int = Field(0, ge=0)
    sixteen_to_25: int = Field(0, ge=0)
    over_25: int = Field(0, ge=0)


class PronounProfile(CamelModel):
    first_person: int = Field(0, ge=0)
    second_person: int = Field(0, ge=0)
    third_person: int = Field(0, ge=0)
    plural: int = Field(0, ge=0)
    gender_neutral: int = Field(0, ge=0)


class SignalSummary(CamelModel):
    """Heuristic signal: total hits plus a few example strings."""

    count: int = Field(0, ge=0)
    examples: List[str] = []


class LanguageStats(CamelModel):
    pos_ratios: PosRatios = Field(default_factory=PosRatios)
    sentence_length_buckets: SentenceLengthBuckets = Field(default_factory=SentenceLengthBuckets)
    pronoun_profile: PronounProfile = Field(default_factory=PronounProfile)
    nominalization_signals: SignalSummary = Field(default_factory=SignalSummary)
    passive_voice_signals: SignalSummary = Field(default_factory=SignalSummary)
    reading_ease: Optional[float] = None


# ---------------------------------------------------------------------------
# Summary / highlights
# ---------------------------------------------------------------------------

class Highlights(CamelModel):
    strengths: List[str] = []
    risks: List[str] = []


class LlmSummary(CamelModel):
    synopsis: List[str]
    comps: List[str]
    red_flags: List[str]
    market_positioning: List[str]


# ---------------------------------------------------------------------------
# Analyze endpoint
# ---------------------------------------------------------------------------

class AnalyzeResponse(CamelModel):
    """Response for POST /analyze (schema version 1.0)."""

    schema_version: Literal["1.0"] = "1.0"
    file_name: str
    title_guess: str
    detected_genre: str
    detected_subgenre: str
    subgenre_candidates: List[str]
    word_count: int
    char_count: int
    spider_by_mode: SpiderByMode
    highlights: Highlights
    language_stats: LanguageStats
    evidence_index: List[EvidenceSnippet]
    llm_summary: LlmSummary


class ErrorResponse(BaseModel):
    """Error body returned by the analyze endpoint."""

    error: str


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    gemini: str
    models: List[str] = []
    timestamp: datetime
