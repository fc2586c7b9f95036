"""Tests for retrieval health stats and diagnostic hints."""
from __future__ import annotations

import pytest

from claims_kb.models import KnowledgeChunkCandidate, KnowledgeDocument, RetrievalHealthStats
from claims_kb.query.diagnostics import (
    compute_retrieval_health,
    diagnose_retrieval,
    eligible_chunks,
)
from claims_kb.query.settings import normalize_knowledge_basin_settings

from conftest import make_document

DEFAULT_SETTINGS = normalize_knowledge_basin_settings({})


def _health(**overrides) -> RetrievalHealthStats:
    values = dict(
        processed_docs=5,
        docs_matching_filters=5,
        chunks_available=40,
        chunks_matching_doc_filters=40,
        docs_with_zero_chunks=0,
        pool_capped=False,
    )
    values.update(overrides)
    return RetrievalHealthStats(**values)


class TestDiagnoseRetrieval:
    def test_no_documents_match_filters(self):
        hint = diagnose_retrieval(_health(docs_matching_filters=0, chunks_available=0), DEFAULT_SETTINGS)
        assert "status/category filters" in hint

    def test_documents_without_chunks(self):
        hint = diagnose_retrieval(
            _health(chunks_available=0, chunks_matching_doc_filters=0, docs_with_zero_chunks=3),
            DEFAULT_SETTINGS,
        )
        assert hint.startswith("3 document(s)")
        assert "chunking likely failed" in hint

    def test_filters_too_restrictive(self):
        hint = diagnose_retrieval(_health(chunks_available=0), DEFAULT_SETTINGS)
        assert "too restrictive" in hint

    def test_very_small_corpus(self):
        # top_k 10 -> threshold max(2, 5) = 5
        hint = diagnose_retrieval(_health(chunks_available=4), DEFAULT_SETTINGS)
        assert "very small" in hint
        assert diagnose_retrieval(_health(chunks_available=5), DEFAULT_SETTINGS) is None

    def test_small_top_k_uses_floor_of_two(self):
        settings = normalize_knowledge_basin_settings({"top_k": 1})
        assert diagnose_retrieval(_health(chunks_available=1), settings) is not None
        assert diagnose_retrieval(_health(chunks_available=2), settings) is None

    def test_healthy_basin_has_no_hint(self):
        assert diagnose_retrieval(_health(), DEFAULT_SETTINGS) is None


class TestEligibleChunks:
    def test_status_filter_and_zero_chunk_docs(self, basin_documents):
        chunks, health = eligible_chunks(basin_documents, DEFAULT_SETTINGS)
        assert health.processed_docs == 3
        assert health.docs_matching_filters == 3
        assert health.chunks_available == 4
        assert health.chunks_matching_doc_filters == 4
        assert health.docs_with_zero_chunks == 0
        assert health.pool_capped is False
        assert {c.doc_id for c in chunks} == {"doc-acv", "doc-roof", "doc-op"}

    def test_failed_document_counts_once_status_allows_it(self, basin_documents):
        settings = normalize_knowledge_basin_settings({"statuses": ["completed", "failed"]})
        health = compute_retrieval_health(basin_documents, settings)
        assert health.docs_with_zero_chunks == 1

    def test_category_filter_is_case_insensitive(self, basin_documents):
        settings = normalize_knowledge_basin_settings({"categories": ["Building-Codes"]})
        chunks, health = eligible_chunks(basin_documents, settings)
        assert health.docs_matching_filters == 1
        assert {c.doc_id for c in chunks} == {"doc-acv"}

    def test_tag_filter_uses_document_and_chunk_tags(self):
        tagged_chunk = KnowledgeChunkCandidate(
            chunk_id="x-1", doc_id="x", doc_title="X", content="...", metadata={"tags": ["Hail"]}
        )
        docs = [
            KnowledgeDocument(doc_id="x", title="X", status="completed", chunks=(
                tagged_chunk,
                KnowledgeChunkCandidate(chunk_id="x-2", doc_id="x", doc_title="X", content="..."),
            )),
            make_document("roof", ["shingles"], tags=("hail",)),
        ]
        settings = normalize_knowledge_basin_settings({"tags": ["hail"]})
        chunks, health = eligible_chunks(docs, settings)
        assert [c.chunk_id for c in chunks] == ["x-1", "roof-0"]
        assert health.chunks_matching_doc_filters == 3
        assert health.chunks_available == 2
        assert health.filters["tags"] == ("hail",)

    def test_pool_capped(self):
        docs = [make_document("big", [f"chunk {i}" for i in range(12)])]
        health = compute_retrieval_health(docs, normalize_knowledge_basin_settings({"pool": 10}))
        assert health.pool_capped is True

    @pytest.mark.parametrize("status", ["processing", "failed", ""])
    def test_unprocessed_documents_excluded(self, status):
        docs = [make_document("d", ["text"], status=status)]
        health = compute_retrieval_health(docs, DEFAULT_SETTINGS)
        assert health.processed_docs == 0
        assert diagnose_retrieval(health, DEFAULT_SETTINGS).startswith("No knowledge basin documents")
