"""Value objects shared by the retrieval engine.

Every object is an immutable dataclass built fresh per query. ``to_dict``
returns the camelCase shape the hosting layer serializes to JSON.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Generic, TypeVar

from langchain_core.documents import Document

T = TypeVar("T")


@dataclass(frozen=True)
class KnowledgeChunkCandidate:
    """A retrievable unit of document text."""

    chunk_id: str
    doc_id: str
    doc_title: str
    content: str
    category: str | None = None
    metadata: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunkId": self.chunk_id,
            "docId": self.doc_id,
            "docTitle": self.doc_title,
            "content": self.content,
            "category": self.category,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }


@dataclass(frozen=True)
class KnowledgeChunkMatch(KnowledgeChunkCandidate):
    """A candidate plus its additive lexical relevance score."""

    score: float = 0.0

    @classmethod
    def from_candidate(
        cls, candidate: KnowledgeChunkCandidate, score: float
    ) -> KnowledgeChunkMatch:
        values = {
            f.name: getattr(candidate, f.name) for f in fields(KnowledgeChunkCandidate)
        }
        return cls(**values, score=score)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["score"] = self.score
        return out

    def to_document(self) -> Document:
        """Convert to a LangChain ``Document`` (score kept in metadata)."""
        meta: dict[str, Any] = dict(self.metadata or {})
        meta.update(
            {
                "doc_id": self.doc_id,
                "doc_title": self.doc_title,
                "chunk_id": self.chunk_id,
                "category": self.category,
                "score": self.score,
            }
        )
        return Document(page_content=self.content, metadata=meta)


@dataclass(frozen=True)
class KnowledgeSource:
    """Citation record derived from a match."""

    doc_id: str
    doc_title: str
    chunk_id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "docId": self.doc_id,
            "docTitle": self.doc_title,
            "chunkId": self.chunk_id,
            "score": self.score,
        }


@dataclass(frozen=True)
class KnowledgeDocument:
    """A basin document with its ingested chunks.

    ``status`` mirrors the ingestion pipeline (``completed``, ``processed``,
    ``failed``...). A document whose chunking failed has no chunks.
    """

    doc_id: str
    title: str
    status: str
    category: str | None = None
    tags: tuple[str, ...] = ()
    chunks: tuple[KnowledgeChunkCandidate, ...] = ()


@dataclass(frozen=True)
class RetrievalHealthStats:
    """Diagnostic snapshot of one retrieval attempt."""

    processed_docs: int
    docs_matching_filters: int
    chunks_available: int
    chunks_matching_doc_filters: int
    docs_with_zero_chunks: int
    pool_capped: bool
    filters: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    diversity_relaxed: bool = False
    diagnostic_hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "processedDocs": self.processed_docs,
            "docsMatchingFilters": self.docs_matching_filters,
            "chunksAvailable": self.chunks_available,
            "chunksMatchingDocFilters": self.chunks_matching_doc_filters,
            "docsWithZeroChunks": self.docs_with_zero_chunks,
            "poolCapped": self.pool_capped,
            "diversityRelaxed": self.diversity_relaxed,
            "filters": {k: list(v) for k, v in self.filters.items()},
        }
        if self.diagnostic_hint is not None:
            out["diagnosticHint"] = self.diagnostic_hint
        return out


@dataclass(frozen=True)
class QueryExpansionDebug:
    queries: tuple[str, ...] = ()

    @property
    def total_queries(self) -> int:
        return len(self.queries)

    def to_dict(self) -> dict[str, Any]:
        return {"totalQueries": self.total_queries, "queries": list(self.queries)}


@dataclass(frozen=True)
class RetrievalDebug:
    pool: int
    top_k: int
    per_doc_cap: int
    query_expansion: QueryExpansionDebug = field(default_factory=QueryExpansionDebug)
    health: RetrievalHealthStats | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "pool": self.pool,
            "topK": self.top_k,
            "perDocCap": self.per_doc_cap,
            "queryExpansion": self.query_expansion.to_dict(),
        }
        if self.health is not None:
            out["health"] = self.health.to_dict()
        return out


@dataclass(frozen=True)
class KbFirstNoMatchResponse:
    """Structured payload returned when the basin has no evidence."""

    result: str
    clarifying_question: str
    suggested_queries: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()
    diagnostic_hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "result": self.result,
            "clarifyingQuestion": self.clarifying_question,
            "suggestedQueries": list(self.suggested_queries),
            "nextSteps": list(self.next_steps),
        }
        if self.diagnostic_hint is not None:
            out["diagnosticHint"] = self.diagnostic_hint
        return out


@dataclass(frozen=True)
class KnowledgeSearchResult:
    """Matches from a search collaborator, optionally with health stats.

    ``queries`` lists the expanded variants the collaborator actually ranked;
    empty when it does not expand.
    """

    matches: tuple[KnowledgeChunkMatch, ...] = ()
    health: RetrievalHealthStats | None = None
    queries: tuple[str, ...] = ()

    @classmethod
    def of(
        cls,
        matches: Sequence[KnowledgeChunkMatch],
        health: RetrievalHealthStats | None = None,
        queries: Sequence[str] = (),
    ) -> KnowledgeSearchResult:
        return cls(matches=tuple(matches), health=health, queries=tuple(queries))


@dataclass(frozen=True)
class KbFirstResult(Generic[T]):
    """Uniform envelope returned by the KB-first flow.

    Exactly one of ``llm_result`` and ``not_found_response`` is set,
    matching ``skipped_llm``.
    """

    used_kb: bool
    skipped_llm: bool
    retrieval: RetrievalDebug
    sources: tuple[KnowledgeSource, ...] = ()
    llm_result: T | None = None
    not_found_response: KbFirstNoMatchResponse | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "usedKb": self.used_kb,
            "skippedLlm": self.skipped_llm,
            "retrieval": self.retrieval.to_dict(),
            "sources": [s.to_dict() for s in self.sources],
        }
        if self.skipped_llm:
            out["notFoundResponse"] = (
                self.not_found_response.to_dict() if self.not_found_response else None
            )
        else:
            out["llmResult"] = self.llm_result
        return out
