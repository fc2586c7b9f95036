"""Additive lexical scoring of knowledge chunks.

The model is deliberately simple: whole-question and quoted-phrase hits
dominate, then per-term hits in content, title, category and tags add
small increments. Scores are deterministic and can be explained by
:func:`score_chunk` term by term. This runs as a first-pass filter ahead
of the LLM; there is no semantic matching.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from claims_kb import config
from claims_kb.models import KnowledgeChunkCandidate, KnowledgeChunkMatch
from claims_kb.query.settings import KnowledgeBasinSettings

logger = logging.getLogger(__name__)

_TERM_SPLIT = re.compile(r"[^a-z0-9&]+")
_QUOTED_PHRASE = re.compile(r"[\"']([^\"']{3,})[\"']")


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable weights of the lexical model."""

    full_query: float = 20.0
    quoted_phrase: float = 18.0
    long_term: float = 2.0
    short_term: float = 1.0
    title_term: float = 1.5
    category_term: float = 0.8
    tag_term: float = 1.0
    full_query_min_length: int = 10
    long_term_min_length: int = 5

    @classmethod
    def from_config(cls) -> ScoringWeights:
        return cls(
            full_query=config.KB_WEIGHT_FULL_QUERY,
            quoted_phrase=config.KB_WEIGHT_QUOTED_PHRASE,
            long_term=config.KB_WEIGHT_LONG_TERM,
            short_term=config.KB_WEIGHT_SHORT_TERM,
            title_term=config.KB_WEIGHT_TITLE_TERM,
            category_term=config.KB_WEIGHT_CATEGORY_TERM,
            tag_term=config.KB_WEIGHT_TAG_TERM,
        )


def split_terms(text: str) -> list[str]:
    """Lowercase terms of at least two characters, unique, in first-seen order."""
    terms = (t for t in _TERM_SPLIT.split((text or "").lower()) if len(t) >= 2)
    return list(dict.fromkeys(terms))


def extract_quoted_phrases(text: str) -> list[str]:
    """Lowercased phrases of 3+ characters quoted with ``"`` or ``'``."""
    phrases: list[str] = []
    for match in _QUOTED_PHRASE.finditer(text or ""):
        phrase = match.group(1).strip().lower()
        if len(phrase) >= 3:
            phrases.append(phrase)
    return phrases


def metadata_tags(metadata: Mapping[str, Any] | None) -> list[str]:
    """Lowercased string tags from chunk metadata; anything else means no tags."""
    if not metadata:
        return []
    raw = metadata.get("tags")
    if not isinstance(raw, (list, tuple)):
        return []
    return [t.strip().lower() for t in raw if isinstance(t, str) and t.strip()]


def score_chunk(
    query: str,
    terms: Sequence[str],
    phrases: Sequence[str],
    candidate: KnowledgeChunkCandidate,
    weights: ScoringWeights,
) -> float:
    """Score one candidate against a lowercased *query* and its terms/phrases."""
    content = (candidate.content or "").lower()
    title = (candidate.doc_title or "").lower()
    category = (candidate.category or "").lower()
    tags = metadata_tags(candidate.metadata)

    score = 0.0
    if len(query) >= weights.full_query_min_length and query in content:
        score += weights.full_query

    for phrase in phrases:
        if phrase in content:
            score += weights.quoted_phrase

    for term in terms:
        if term in content:
            score += (
                weights.long_term
                if len(term) >= weights.long_term_min_length
                else weights.short_term
            )
        if term in title:
            score += weights.title_term
        if term in category:
            score += weights.category_term
        if any(term in tag for tag in tags):
            score += weights.tag_term
    return score


def rank_knowledge_chunks(
    question: str,
    candidates: Sequence[KnowledgeChunkCandidate],
    settings: KnowledgeBasinSettings | None = None,
    weights: ScoringWeights | None = None,
) -> list[KnowledgeChunkMatch]:
    """Score candidates and return those above zero, best first.

    When *settings* is given only the first ``settings.pool`` candidates are
    considered. Ties keep input order.
    """
    query = (question or "").strip().lower()
    if not query:
        return []
    if weights is None:
        weights = ScoringWeights.from_config()
    if settings is not None:
        candidates = candidates[: settings.pool]

    terms = split_terms(query)
    phrases = extract_quoted_phrases(question)

    scored: list[KnowledgeChunkMatch] = []
    for candidate in candidates:
        score = score_chunk(query, terms, phrases, candidate, weights)
        if score > 0:
            scored.append(KnowledgeChunkMatch.from_candidate(candidate, score))

    scored.sort(key=lambda m: m.score, reverse=True)
    logger.debug(
        "Ranked %d/%d candidates (%d terms, %d quoted phrases)",
        len(scored),
        len(candidates),
        len(terms),
        len(phrases),
    )
    return scored
