"""
Manuscript analysis orchestrator.

Public API
----------
ManuscriptAnalyzer.analyze_upload(file_name, content_type, data) -> AnalyzeResponse
    Extract text from an uploaded file, then run ``analyze_text``.

ManuscriptAnalyzer.analyze_text(file_name, raw_text, deadline=None) -> AnalyzeResponse
    local stats -> extraction call -> merge stats -> scoring call -> response.

All model calls of one upload share a single ``Deadline`` from the invoker.

Only insufficient text is a hard failure here. Both model calls are soft:
if either fails (models exhausted, unparseable JSON) the stage is logged and
replaced by deterministic fallback data, and the request still succeeds.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional

from app.config import Settings, settings as default_settings
from app.models.schemas import (
    AnalyzeResponse,
    EvidenceSnippet,
    Highlights,
    LanguageStats,
)
from app.models.taxonomy import ALL_AXIS_KEYS
from app.services.gemini_client import text_part
from app.services.linguistics import analyze_text
from app.services.model_invoker import Deadline, ModelInvoker
from app.services.prompts import build_extraction_prompt, build_scoring_prompt
from app.services.sanitizer import (
    clean_evidence,
    clean_highlights,
    clean_language_stats,
    clean_spider,
    clean_summary,
    fallback_summary,
    merge_language_stats,
    pick_title,
    safe_string_list,
    try_parse_model_json,
)
from app.services.text_extraction import DocumentTextExtractor

logger = logging.getLogger(__name__)

# Static genre hints for the scoring prompt. They are not derived from the
# extraction stage yet; the model may still override them in its answer.
DEFAULT_GENRE = "General Fiction"
DEFAULT_SUBGENRE = "Contemporary"
DEFAULT_SUBGENRE_CANDIDATES = ["Contemporary", "Literary", "Commercial", "Speculative"]

EXTRACTION_GENERATION_CONFIG = {"temperature": 0.2, "maxOutputTokens": 2048}
SCORING_GENERATION_CONFIG = {"temperature": 0.3, "maxOutputTokens": 2048}

INSUFFICIENT_TEXT_MESSAGE = (
    "Could not extract enough text. Please provide a longer manuscript sample."
)


class InsufficientTextError(ValueError):
    """The extracted text is empty or too short to analyse."""


def truncate_for_model(text: str, limit: int) -> str:
    return text[:limit] if len(text) > limit else text


def _non_blank(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


@dataclasses.dataclass
class ExtractionStage:
    evidence_index: List[EvidenceSnippet] = dataclasses.field(default_factory=list)
    model_language_stats: Dict[str, Any] = dataclasses.field(default_factory=dict)


class ManuscriptAnalyzer:
    """
    Sequences the analysis of one manuscript.

    Stateless between calls; instantiate one per request (see
    ``app.dependencies.analyzer``).
    """

    def __init__(
        self,
        invoker: ModelInvoker,
        extractor: Optional[DocumentTextExtractor] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._invoker = invoker
        self._extractor = extractor or DocumentTextExtractor(invoker)
        self._config = config or default_settings

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def analyze_upload(
        self,
        file_name: str,
        content_type: Optional[str],
        data: bytes,
    ) -> AnalyzeResponse:
        # One deadline covers PDF extraction and both analysis calls
        deadline = self._invoker.start_deadline()
        raw_text = await self._extractor.extract(file_name, content_type, data, deadline=deadline)
        return await self.analyze_text(file_name, raw_text, deadline=deadline)

    async def analyze_text(
        self,
        file_name: str,
        raw_text: str,
        deadline: Optional[Deadline] = None,
    ) -> AnalyzeResponse:
        deadline = deadline or self._invoker.start_deadline()
        cleaned = (raw_text or "").strip()
        if not cleaned or len(cleaned) < self._config.MIN_TEXT_CHARS:
            raise InsufficientTextError(INSUFFICIENT_TEXT_MESSAGE)

        text = truncate_for_model(cleaned, self._config.MAX_MODEL_TEXT_CHARS)
        local = analyze_text(text)
        logger.info(
            "Analyzing %r: %d words, %d chars", file_name, local.word_count, local.char_count
        )

        extraction = await self._run_extraction(text, local.language_stats, deadline)
        language_stats = merge_language_stats(
            local.language_stats, extraction.model_language_stats
        )

        response = await self._run_scoring(text, language_stats, deadline)
        return response.model_copy(
            update={
                "file_name": file_name,
                "title_guess": pick_title(cleaned, file_name),
                "word_count": local.word_count,
                "char_count": local.char_count,
                "evidence_index": extraction.evidence_index,
            }
        )

    # ------------------------------------------------------------------
    # Stage 1: evidence + language stats
    # ------------------------------------------------------------------

    async def _run_extraction(
        self, text: str, local_stats: LanguageStats, deadline: Deadline
    ) -> ExtractionStage:
        prompt = build_extraction_prompt(
            text=text,
            snippet_count=self._config.EVIDENCE_SNIPPET_COUNT,
            axis_keys=ALL_AXIS_KEYS,
            sentence_length_buckets=local_stats.sentence_length_buckets.model_dump(by_alias=True),
            pronoun_profile=local_stats.pronoun_profile.model_dump(by_alias=True),
            pos_ratios=local_stats.pos_ratios.model_dump(by_alias=True),
        )

        try:
            raw = await self._invoker.invoke(
                [text_part(prompt)], EXTRACTION_GENERATION_CONFIG, deadline=deadline
            )
        except Exception as exc:
            logger.error("Extraction call failed, continuing without evidence: %s", exc)
            return ExtractionStage()

        outcome = try_parse_model_json(raw)
        if not outcome.ok:
            logger.error("Extraction response unusable, continuing without evidence: %s", outcome.reason)
            return ExtractionStage()

        stage = ExtractionStage(
            evidence_index=clean_evidence(outcome.value.get("evidenceIndex")),
            model_language_stats=clean_language_stats(
                outcome.value.get("languageStats"), local_stats
            ),
        )
        logger.info(
            "Extraction: %d evidence snippets, %d model stat groups",
            len(stage.evidence_index),
            len(stage.model_language_stats),
        )
        return stage

    # ------------------------------------------------------------------
    # Stage 2: spider scores + summary
    # ------------------------------------------------------------------

    async def _run_scoring(
        self, text: str, language_stats: LanguageStats, deadline: Deadline
    ) -> AnalyzeResponse:
        fallback_score = self._config.FALLBACK_BASE_SCORE
        response = AnalyzeResponse(
            file_name="",
            title_guess="",
            detected_genre=DEFAULT_GENRE,
            detected_subgenre=DEFAULT_SUBGENRE,
            subgenre_candidates=list(DEFAULT_SUBGENRE_CANDIDATES),
            word_count=0,
            char_count=0,
            spider_by_mode=clean_spider(None, fallback_score),
            highlights=Highlights(),
            language_stats=language_stats,
            evidence_index=[],
            llm_summary=fallback_summary(),
        )

        prompt = build_scoring_prompt(
            text_sample=truncate_for_model(text, self._config.SCORING_SAMPLE_CHARS),
            detected_genre=DEFAULT_GENRE,
            detected_subgenre=DEFAULT_SUBGENRE,
            subgenre_candidates=DEFAULT_SUBGENRE_CANDIDATES,
            language_stats_summary=language_stats.model_dump(by_alias=True, exclude_none=True),
        )

        try:
            raw = await self._invoker.invoke(
                [text_part(prompt)], SCORING_GENERATION_CONFIG, deadline=deadline
            )
        except Exception as exc:
            logger.error("Scoring call failed, using fallback scores: %s", exc)
            return response

        outcome = try_parse_model_json(raw)
        if not outcome.ok:
            logger.error("Scoring response unusable, using fallback scores: %s", outcome.reason)
            return response

        parsed = outcome.value
        return response.model_copy(
            update={
                "spider_by_mode": clean_spider(parsed.get("spiderByMode"), fallback_score),
                "llm_summary": clean_summary(parsed.get("llmSummary")),
                "highlights": clean_highlights(parsed.get("highlights")),
                "detected_genre": _non_blank(parsed.get("detectedGenre"), DEFAULT_GENRE),
                "detected_subgenre": _non_blank(parsed.get("detectedSubgenre"), DEFAULT_SUBGENRE),
                "subgenre_candidates": safe_string_list(parsed.get("subgenreCandidates"))
                or list(DEFAULT_SUBGENRE_CANDIDATES),
            }
        )
