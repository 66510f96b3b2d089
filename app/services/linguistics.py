"""
Deterministic, local linguistic statistics for a manuscript sample.

Everything here is heuristic: suffix patterns stand in for part-of-speech
tagging and regexes for passive voice / nominalization detection. The output
is a reference for the LLM and a fallback when the model supplies nothing.
"""
from __future__ import annotations

import dataclasses
import re
from typing import Dict, FrozenSet, List

from app.models.schemas import (
    LanguageStats,
    PosRatios,
    PronounProfile,
    SentenceLengthBuckets,
    SignalSummary,
)

_TOKEN_SPLIT_RE = re.compile(r"[^a-zA-Z']+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

_PASSIVE_RE = re.compile(r"be(?:en)?\s+[a-z]+ed\b", re.IGNORECASE)
_NOMINALIZATION_RE = re.compile(r"\b\w+(?:tion|ment|ness|ance|ence|ity)\b", re.IGNORECASE)

_NOUN_RE = re.compile(r"\b\w+(?:tion|ment|ness|ity|ance|ence|ship|ism)\b")
_VERB_RE = re.compile(r"\b\w+(?:ing|ed)\b")
_ADJECTIVE_RE = re.compile(r"\b\w+(?:ous|ive|ful|less|able|ible|al|ary)\b")
_QUOTE_RE = re.compile("[\"“”]")

MAX_PASSIVE_EXAMPLES = 3
MAX_NOMINALIZATION_EXAMPLES = 4
NOMINALIZATIONS_PER_SENTENCE = 2
EXAMPLE_MAX_CHARS = 140

PRONOUN_SETS: Dict[str, FrozenSet[str]] = {
    "first_person": frozenset({"i", "me", "my", "mine", "we", "us", "our", "ours"}),
    "second_person": frozenset({"you", "your", "yours"}),
    "third_person": frozenset(
        {"he", "she", "him", "her", "his", "hers", "they", "them", "their", "theirs"}
    ),
    "plural": frozenset({"we", "us", "our", "ours", "they", "them", "their", "theirs"}),
    "gender_neutral": frozenset({"they", "them", "their", "theirs"}),
}


@dataclasses.dataclass(frozen=True)
class LocalAnalysis:
    """Output of ``analyze_text``."""

    char_count: int
    word_count: int
    language_stats: LanguageStats


def tokenize(text: str) -> List[str]:
    """Lower-case word tokens (letters and apostrophes only)."""
    return [tok for tok in _TOKEN_SPLIT_RE.split(text.lower()) if tok]


def split_sentences(text: str) -> List[str]:
    """Sentences split on runs of terminal punctuation, trimmed, empties dropped."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def _ratio(count: int, denominator: int) -> float:
    return max(0.0, min(1.0, count / (denominator or 1)))


def _bucket_sentence_lengths(sentences: List[str]) -> SentenceLengthBuckets:
    buckets = SentenceLengthBuckets()
    for sentence in sentences:
        n = len(tokenize(sentence))
        if n <= 5:
            buckets.up_to_5 += 1
        elif n <= 10:
            buckets.six_to_10 += 1
        elif n <= 15:
            buckets.eleven_to_15 += 1
        elif n <= 25:
            buckets.sixteen_to_25 += 1
        else:
            buckets.over_25 += 1
    return buckets


def _pronoun_profile(words: List[str]) -> PronounProfile:
    counts = {name: 0 for name in PRONOUN_SETS}
    for word in words:
        for name, members in PRONOUN_SETS.items():
            if word in members:
                counts[name] += 1
    return PronounProfile(**counts)


def _pos_ratios(text: str, words: List[str], sentence_count: int) -> PosRatios:
    word_count = len(words)
    return PosRatios(
        nouns=_ratio(sum(1 for w in words if _NOUN_RE.search(w)), word_count),
        verbs=_ratio(sum(1 for w in words if _VERB_RE.search(w)), word_count),
        adjectives=_ratio(sum(1 for w in words if _ADJECTIVE_RE.search(w)), word_count),
        adverbs=_ratio(sum(1 for w in words if w.endswith("ly")), word_count),
        dialogue=_ratio(len(_QUOTE_RE.findall(text)), sentence_count),
    )


def _signals(sentences: List[str]) -> Dict[str, SignalSummary]:
    passive_count = 0
    passive_examples: List[str] = []
    nominal_count = 0
    nominal_examples: List[str] = []

    for sentence in sentences:
        if _PASSIVE_RE.search(sentence):
            passive_count += 1
            if len(passive_examples) < MAX_PASSIVE_EXAMPLES:
                passive_examples.append(sentence[:EXAMPLE_MAX_CHARS])

        matches = [m.group(0) for m in _NOMINALIZATION_RE.finditer(sentence)]
        nominal_count += len(matches)
        for match in matches[:NOMINALIZATIONS_PER_SENTENCE]:
            if len(nominal_examples) < MAX_NOMINALIZATION_EXAMPLES:
                nominal_examples.append(match)

    return {
        "passive": SignalSummary(count=passive_count, examples=passive_examples),
        "nominalization": SignalSummary(count=nominal_count, examples=nominal_examples),
    }


def analyze_text(text: str) -> LocalAnalysis:
    """
    Compute character/word counts and ``LanguageStats`` for *text*.

    Pure and deterministic; empty input yields zeroed statistics.
    """
    words = tokenize(text)
    sentences = split_sentences(text)
    signals = _signals(sentences)

    stats = LanguageStats(
        pos_ratios=_pos_ratios(text, words, len(sentences)),
        sentence_length_buckets=_bucket_sentence_lengths(sentences),
        pronoun_profile=_pronoun_profile(words),
        nominalization_signals=signals["nominalization"],
        passive_voice_signals=signals["passive"],
    )
    return LocalAnalysis(char_count=len(text), word_count=len(words), language_stats=stats)
