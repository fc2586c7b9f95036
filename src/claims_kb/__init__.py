"""Knowledge-basin retrieval engine for property-claim AI features."""
from claims_kb.models import (
    KbFirstNoMatchResponse,
    KbFirstResult,
    KnowledgeChunkCandidate,
    KnowledgeChunkMatch,
    KnowledgeDocument,
    KnowledgeSearchResult,
    KnowledgeSource,
    RetrievalDebug,
    RetrievalHealthStats,
)
from claims_kb.query.context import build_knowledge_context, to_knowledge_sources
from claims_kb.query.diagnostics import compute_retrieval_health, diagnose_retrieval
from claims_kb.query.expand import expand_knowledge_queries, load_synonym_table
from claims_kb.query.kb_first import build_not_found_kb_message, execute_kb_first_flow
from claims_kb.query.scoring import ScoringWeights, rank_knowledge_chunks
from claims_kb.query.select import merge_knowledge_matches, select_top_knowledge_matches
from claims_kb.query.settings import (
    KnowledgeBasinSettings,
    normalize_knowledge_basin_settings,
)

__all__ = [
    "KbFirstNoMatchResponse",
    "KbFirstResult",
    "KnowledgeBasinSettings",
    "KnowledgeChunkCandidate",
    "KnowledgeChunkMatch",
    "KnowledgeDocument",
    "KnowledgeSearchResult",
    "KnowledgeSource",
    "RetrievalDebug",
    "RetrievalHealthStats",
    "ScoringWeights",
    "build_knowledge_context",
    "build_not_found_kb_message",
    "compute_retrieval_health",
    "diagnose_retrieval",
    "execute_kb_first_flow",
    "expand_knowledge_queries",
    "load_synonym_table",
    "merge_knowledge_matches",
    "normalize_knowledge_basin_settings",
    "rank_knowledge_chunks",
    "select_top_knowledge_matches",
    "to_knowledge_sources",
]
