"""Retrieval health statistics and the hints derived from them.

When a query comes back empty the adjuster needs to know whether the
question was the problem or the basin was: filters that exclude every
document, documents whose chunking failed, or a corpus too small to rank.
"""
from __future__ import annotations

import math
from collections.abc import Sequence

from claims_kb.models import (
    KnowledgeChunkCandidate,
    KnowledgeDocument,
    RetrievalHealthStats,
)
from claims_kb.query.scoring import metadata_tags
from claims_kb.query.settings import KnowledgeBasinSettings


def _folded(values: Sequence[str]) -> set[str]:
    return {v.strip().lower() for v in values if v and v.strip()}


def document_matches_filters(
    doc: KnowledgeDocument, settings: KnowledgeBasinSettings
) -> bool:
    """Status and category filters (document level)."""
    if (doc.status or "").strip().lower() not in _folded(settings.statuses):
        return False
    if settings.categories:
        return (doc.category or "").strip().lower() in _folded(settings.categories)
    return True


def chunk_matches_tags(
    chunk: KnowledgeChunkCandidate,
    doc: KnowledgeDocument,
    settings: KnowledgeBasinSettings,
) -> bool:
    """Tag filter (chunk level): chunk metadata tags plus the document's tags."""
    if not settings.tags:
        return True
    wanted = _folded(settings.tags)
    have = set(metadata_tags(chunk.metadata)) | _folded(doc.tags)
    return bool(wanted & have)


def eligible_chunks(
    documents: Sequence[KnowledgeDocument], settings: KnowledgeBasinSettings
) -> tuple[list[KnowledgeChunkCandidate], RetrievalHealthStats]:
    """Return every chunk passing the basin filters with the health snapshot.

    The chunk list is not truncated; ``pool_capped`` records whether it
    exceeds ``settings.pool``.
    """
    processed = [
        d
        for d in documents
        if (d.status or "").strip().lower() in _folded(settings.statuses)
    ]
    matching = [d for d in processed if document_matches_filters(d, settings)]

    chunks_matching_doc_filters = 0
    available: list[KnowledgeChunkCandidate] = []
    for doc in matching:
        chunks_matching_doc_filters += len(doc.chunks)
        available.extend(c for c in doc.chunks if chunk_matches_tags(c, doc, settings))

    health = RetrievalHealthStats(
        processed_docs=len(processed),
        docs_matching_filters=len(matching),
        chunks_available=len(available),
        chunks_matching_doc_filters=chunks_matching_doc_filters,
        docs_with_zero_chunks=sum(1 for d in matching if not d.chunks),
        pool_capped=len(available) > settings.pool,
        filters={
            "statuses": settings.statuses,
            "categories": settings.categories,
            "tags": settings.tags,
        },
    )
    return available, health


def compute_retrieval_health(
    documents: Sequence[KnowledgeDocument], settings: KnowledgeBasinSettings
) -> RetrievalHealthStats:
    return eligible_chunks(documents, settings)[1]


def diagnose_retrieval(
    health: RetrievalHealthStats, settings: KnowledgeBasinSettings
) -> str | None:
    """Explain a thin or empty retrieval; ``None`` when the basin looks healthy."""
    if health.docs_matching_filters == 0:
        return (
            "No knowledge basin documents match the current filters. "
            "Check the status/category filters or reprocess the documents."
        )
    if health.chunks_available == 0:
        if health.docs_with_zero_chunks > 0:
            return (
                f"{health.docs_with_zero_chunks} document(s) matching the filters have no "
                "chunks; ingestion or chunking likely failed. Reprocess those documents."
            )
        return (
            "Documents match the filters but none of their chunks do. The filters may "
            "be too restrictive or chunk metadata (tags) may be missing."
        )
    if health.chunks_available < max(2, math.ceil(settings.top_k / 2)):
        return (
            f"Only {health.chunks_available} chunk(s) are available under the current "
            "filters; the corpus is very small. Consider broadening the filters."
        )
    return None
