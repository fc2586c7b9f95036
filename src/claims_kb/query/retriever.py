"""In-memory knowledge-basin search and its LangChain retriever.

:class:`KnowledgeBasin` is the search collaborator of the KB-first flow:
it applies the basin filters, caps the candidate pool, ranks every
expanded variant of the question, merges the variant results by chunk,
and applies the per-document diversity selection.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever

from claims_kb.models import (
    KnowledgeChunkMatch,
    KnowledgeDocument,
    KnowledgeSearchResult,
)
from claims_kb.query.diagnostics import diagnose_retrieval, eligible_chunks
from claims_kb.query.expand import SynonymTable, expand_knowledge_queries
from claims_kb.query.scoring import ScoringWeights, rank_knowledge_chunks
from claims_kb.query.select import (
    build_diverse_pool,
    cap_per_document,
    merge_knowledge_matches,
)
from claims_kb.query.settings import (
    KnowledgeBasinSettings,
    normalize_knowledge_basin_settings,
)

logger = logging.getLogger(__name__)


class KnowledgeBasin:
    """A searchable, read-only set of basin documents."""

    def __init__(
        self,
        documents: Sequence[KnowledgeDocument],
        synonyms: SynonymTable | Mapping[str, Sequence[str]] | None = None,
        weights: ScoringWeights | None = None,
    ) -> None:
        self.documents = tuple(documents)
        self.synonyms = synonyms
        self.weights = weights

    def __len__(self) -> int:
        return len(self.documents)

    def search(
        self, query: str, settings: KnowledgeBasinSettings
    ) -> KnowledgeSearchResult:
        """Return the top-K matches for *query* with the retrieval health."""
        candidates, health = eligible_chunks(self.documents, settings)
        candidates = candidates[: settings.pool]

        queries = expand_knowledge_queries(query, synonyms=self.synonyms)
        merged: list[KnowledgeChunkMatch] = []
        for variant in queries:
            ranked = rank_knowledge_chunks(variant, candidates, weights=self.weights)
            merged = merge_knowledge_matches(merged, ranked)

        pool, relaxed = build_diverse_pool(merged, settings)
        selected = cap_per_document(pool, settings)
        health = replace(
            health,
            diversity_relaxed=relaxed,
            diagnostic_hint=diagnose_retrieval(health, settings),
        )

        logger.debug(
            "Basin search: %d candidates, %d scored, %d selected (relaxed=%s)",
            len(candidates),
            len(merged),
            len(selected),
            relaxed,
        )
        return KnowledgeSearchResult.of(selected, health, queries)

    async def asearch(
        self, query: str, settings: KnowledgeBasinSettings
    ) -> KnowledgeSearchResult:
        """Awaitable form of :meth:`search`, usable as ``kb_search``."""
        return self.search(query, settings)


class KnowledgeBasinRetriever(BaseRetriever):
    """LangChain retriever over a :class:`KnowledgeBasin`.

    Returns one ``Document`` per selected chunk; the lexical score is kept
    in ``metadata["score"]``.
    """

    model_config = {"arbitrary_types_allowed": True}

    basin: KnowledgeBasin
    settings: KnowledgeBasinSettings | None = None

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun,
    ) -> list[Document]:
        settings = normalize_knowledge_basin_settings(self.settings)
        result = self.basin.search(query, settings)
        return [m.to_document() for m in result.matches]


def get_retriever(
    documents: Sequence[KnowledgeDocument],
    settings: KnowledgeBasinSettings | Mapping[str, Any] | None = None,
    synonyms: SynonymTable | Mapping[str, Sequence[str]] | None = None,
) -> BaseRetriever:
    """Build a :class:`KnowledgeBasinRetriever` over *documents*."""
    return KnowledgeBasinRetriever(
        basin=KnowledgeBasin(documents, synonyms=synonyms),
        settings=normalize_knowledge_basin_settings(settings),
    )
