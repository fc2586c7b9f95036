"""Shared fixtures for the knowledge-basin tests."""
from __future__ import annotations

import pytest

from claims_kb.models import KnowledgeChunkCandidate, KnowledgeChunkMatch, KnowledgeDocument

SYNONYMS = {
    "acv": ["actual cash value", "depreciated value"],
    "o&p": ["overhead and profit"],
}


def make_match(chunk_id: str, doc_id: str, score: float, content: str = "") -> KnowledgeChunkMatch:
    return KnowledgeChunkMatch(
        chunk_id=chunk_id,
        doc_id=doc_id,
        doc_title=f"Title {doc_id}",
        content=content or f"content of {chunk_id}",
        score=score,
    )


def make_document(
    doc_id: str,
    contents: list[str],
    *,
    status: str = "completed",
    category: str | None = "training-materials",
    tags: tuple[str, ...] = (),
    title: str | None = None,
) -> KnowledgeDocument:
    title = title or f"Document {doc_id}"
    return KnowledgeDocument(
        doc_id=doc_id,
        title=title,
        status=status,
        category=category,
        tags=tags,
        chunks=tuple(
            KnowledgeChunkCandidate(
                chunk_id=f"{doc_id}-{i}",
                doc_id=doc_id,
                doc_title=title,
                content=text,
                category=category,
            )
            for i, text in enumerate(contents)
        ),
    )


@pytest.fixture
def synonyms() -> dict[str, list[str]]:
    return dict(SYNONYMS)


@pytest.fixture
def basin_documents() -> list[KnowledgeDocument]:
    return [
        make_document(
            "doc-acv",
            [
                "Actual cash value is replacement cost minus depreciation.",
                "Recoverable depreciation is paid once repairs are complete.",
            ],
            title="ACV and Code Upgrade Training",
            category="building-codes",
        ),
        make_document(
            "doc-roof",
            ["Hail damage to shingles requires a test square inspection."],
            title="Roof Claims Playbook",
            tags=("roofing",),
        ),
        make_document(
            "doc-op",
            ["Overhead and profit applies when three or more trades are involved."],
            title="Contractor Pricing Notes",
        ),
        make_document("doc-failed", [], status="failed"),
    ]
