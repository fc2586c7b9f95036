"""Tests for diversity selection and match merging."""
from __future__ import annotations

import random
from collections import Counter

import pytest

from claims_kb.query.select import (
    build_diverse_pool,
    cap_per_document,
    merge_knowledge_matches,
    select_top_knowledge_matches,
)
from claims_kb.query.settings import normalize_knowledge_basin_settings

from conftest import make_match


class TestSelectTopKnowledgeMatches:
    def test_single_document_capped_to_one(self):
        settings = normalize_knowledge_basin_settings({"pool": 500, "top_k": 3, "per_doc_cap": 1})
        scored = [make_match(f"c{i}", "doc-a", score) for i, score in enumerate([5, 9, 7, 3, 1])]
        selected = select_top_knowledge_matches(scored, settings)
        assert [m.chunk_id for m in selected] == ["c1"]

    def test_top_k_bound(self):
        settings = normalize_knowledge_basin_settings({"top_k": 4, "per_doc_cap": 5})
        scored = [make_match(f"c{i}", f"doc-{i}", 10 - i) for i in range(9)]
        assert len(select_top_knowledge_matches(scored, settings)) == 4

    def test_spreads_across_documents(self):
        settings = normalize_knowledge_basin_settings({"top_k": 4, "per_doc_cap": 2})
        scored = [make_match(f"a{i}", "doc-a", 100 - i) for i in range(6)]
        scored += [make_match(f"b{i}", "doc-b", 50 - i) for i in range(6)]
        selected = select_top_knowledge_matches(scored, settings)
        assert [m.chunk_id for m in selected] == ["a0", "a1", "b0", "b1"]

    def test_empty_input(self):
        settings = normalize_knowledge_basin_settings({})
        assert select_top_knowledge_matches([], settings) == []

    @pytest.mark.parametrize("seed", range(5))
    def test_hard_cap_and_bound_hold_for_random_inputs(self, seed):
        rng = random.Random(seed)
        settings = normalize_knowledge_basin_settings(
            {"top_k": rng.randint(1, 12), "per_doc_cap": rng.randint(1, 4)}
        )
        scored = [
            make_match(f"c{i}", f"doc-{rng.randint(0, 4)}", rng.uniform(0.1, 50))
            for i in range(rng.randint(0, 60))
        ]
        selected = select_top_knowledge_matches(scored, settings)
        assert len(selected) <= settings.top_k
        assert max(Counter(m.doc_id for m in selected).values(), default=0) <= settings.per_doc_cap
        assert [m.score for m in selected] == sorted((m.score for m in selected), reverse=True)


class TestBuildDiversePool:
    def test_soft_cap_applied_on_large_corpus(self):
        settings = normalize_knowledge_basin_settings(
            {"top_k": 2, "per_doc_cap": 1, "soft_pool_per_doc_cap": 2}
        )
        scored = [make_match(f"{d}{i}", f"doc-{d}", 100 - i) for d in "abcd" for i in range(5)]
        pool, relaxed = build_diverse_pool(scored, settings)
        assert relaxed is False
        assert len(pool) == 8
        assert max(Counter(m.doc_id for m in pool).values()) == 2

    def test_falls_back_on_small_corpus(self):
        settings = normalize_knowledge_basin_settings({"top_k": 3, "per_doc_cap": 1})
        scored = [make_match(f"c{i}", "doc-a", 10 - i) for i in range(5)]
        pool, relaxed = build_diverse_pool(scored, settings)
        assert relaxed is True
        assert len(pool) == 5


class TestCapPerDocument:
    def test_keeps_pool_order_under_caps(self):
        settings = normalize_knowledge_basin_settings({"top_k": 3, "per_doc_cap": 1})
        pool = [
            make_match("a0", "doc-a", 9.0),
            make_match("a1", "doc-a", 8.0),
            make_match("b0", "doc-b", 7.0),
            make_match("c0", "doc-c", 6.0),
            make_match("d0", "doc-d", 5.0),
        ]
        assert [m.chunk_id for m in cap_per_document(pool, settings)] == ["a0", "b0", "c0"]

    def test_matches_selector_on_diverse_pool(self):
        settings = normalize_knowledge_basin_settings({"top_k": 4, "per_doc_cap": 2})
        scored = [make_match(f"c{i}", f"doc-{i % 3}", 30 - i) for i in range(12)]
        pool, _relaxed = build_diverse_pool(scored, settings)
        assert cap_per_document(pool, settings) == select_top_knowledge_matches(scored, settings)


class TestMergeKnowledgeMatches:
    def test_higher_score_wins_for_duplicate_chunk(self):
        a = [make_match("c1", "doc-a", 2.0), make_match("c2", "doc-a", 5.0)]
        b = [make_match("c1", "doc-a", 7.5), make_match("c3", "doc-b", 1.0)]
        merged = merge_knowledge_matches(a, b)
        assert [(m.chunk_id, m.score) for m in merged] == [("c1", 7.5), ("c2", 5.0), ("c3", 1.0)]

    def test_lower_duplicate_does_not_replace(self):
        merged = merge_knowledge_matches([make_match("c1", "d", 4.0)], [make_match("c1", "d", 3.0)])
        assert merged[0].score == 4.0

    def test_idempotent_with_empty(self):
        a = [make_match("c1", "doc-a", 2.0), make_match("c2", "doc-b", 2.0)]
        b = [make_match("c2", "doc-b", 3.0), make_match("c4", "doc-c", 0.5)]
        once = merge_knowledge_matches(a, b)
        assert merge_knowledge_matches(once, []) == once
