"""Schema and taxonomy models for the manuscript analyzer."""
from app.models.schemas import (
    AnalyzeResponse,
    ErrorResponse,
    EvidenceSnippet,
    HealthCheckResponse,
    Highlights,
    LanguageStats,
    LlmSummary,
    SpiderAxisScore,
    SpiderByMode,
)
from app.models.taxonomy import (
    ALL_AXIS_KEYS,
    AXIS_META,
    AxisKey,
    SpiderMode,
)

__all__ = [
    # Taxonomy
    "ALL_AXIS_KEYS",
    "AXIS_META",
    "AxisKey",
    "SpiderMode",
    # Pydantic schemas
    "AnalyzeResponse",
    "ErrorResponse",
    "EvidenceSnippet",
    "HealthCheckResponse",
    "Highlights",
    "LanguageStats",
    "LlmSummary",
    "SpiderAxisScore",
    "SpiderByMode",
]
