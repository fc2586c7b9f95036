"""Per-document diversity selection and match merging."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from claims_kb.models import KnowledgeChunkMatch
from claims_kb.query.settings import KnowledgeBasinSettings

logger = logging.getLogger(__name__)


def _by_score(matches: Sequence[KnowledgeChunkMatch]) -> list[KnowledgeChunkMatch]:
    return sorted(matches, key=lambda m: m.score, reverse=True)


def build_diverse_pool(
    scored: Sequence[KnowledgeChunkMatch],
    settings: KnowledgeBasinSettings,
) -> tuple[list[KnowledgeChunkMatch], bool]:
    """Apply the soft per-document cap to score-sorted matches.

    Returns ``(pool, relaxed)``. When capping would leave fewer than
    ``min(len(scored), max(2 * top_k, top_k + 4))`` matches the cap is
    dropped, the full list is returned and *relaxed* is True.
    """
    ordered = _by_score(scored)
    soft_cap = max(settings.per_doc_cap, settings.soft_pool_per_doc_cap)

    counts: dict[str, int] = {}
    diverse: list[KnowledgeChunkMatch] = []
    for match in ordered:
        count = counts.get(match.doc_id, 0)
        if count >= soft_cap:
            continue
        diverse.append(match)
        counts[match.doc_id] = count + 1

    floor = min(len(ordered), max(settings.top_k * 2, settings.top_k + 4))
    if len(diverse) < floor:
        logger.debug(
            "Soft per-doc cap left %d/%d matches (floor %d); using unfiltered list",
            len(diverse),
            len(ordered),
            floor,
        )
        return ordered, True
    return diverse, False


def select_top_knowledge_matches(
    scored: Sequence[KnowledgeChunkMatch],
    settings: KnowledgeBasinSettings,
) -> list[KnowledgeChunkMatch]:
    """Pick at most ``top_k`` matches with no more than ``per_doc_cap`` per document."""
    pool, _relaxed = build_diverse_pool(scored, settings)
    return cap_per_document(pool, settings)


def cap_per_document(
    pool: Sequence[KnowledgeChunkMatch],
    settings: KnowledgeBasinSettings,
) -> list[KnowledgeChunkMatch]:
    """Hard per-document cap and ``top_k`` bound over an already ordered *pool*."""
    counts: dict[str, int] = {}
    selected: list[KnowledgeChunkMatch] = []
    for match in pool:
        if len(selected) >= settings.top_k:
            break
        count = counts.get(match.doc_id, 0)
        if count >= settings.per_doc_cap:
            continue
        selected.append(match)
        counts[match.doc_id] = count + 1
    return selected


def merge_knowledge_matches(
    existing: Sequence[KnowledgeChunkMatch],
    incoming: Sequence[KnowledgeChunkMatch],
) -> list[KnowledgeChunkMatch]:
    """Union by ``chunk_id``; a strictly higher score replaces. Best first."""
    by_chunk: dict[str, KnowledgeChunkMatch] = {}
    for match in [*existing, *incoming]:
        prior = by_chunk.get(match.chunk_id)
        if prior is None or match.score > prior.score:
            by_chunk[match.chunk_id] = match
    return _by_score(list(by_chunk.values()))
