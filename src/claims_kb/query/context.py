"""Rendering of selected matches into the authoritative LLM context block."""
from __future__ import annotations

from collections.abc import Sequence

from claims_kb.models import KnowledgeChunkMatch, KnowledgeSource

NOT_FOUND_SENTENCE = "Not found in Knowledge Base."

CONTEXT_HEADER = (
    "=== KNOWLEDGE BASIN CONTEXT (AUTHORITATIVE) ===\n"
    "Use ONLY this context plus explicit claim facts already provided in the prompt.\n"
    f'If the answer is not in this context, respond: "{NOT_FOUND_SENTENCE}"\n'
    "Cite sources by the bracketed KB labels below (KB-1, KB-2, ...) in your response.\n\n"
)
CONTEXT_FOOTER = "=== END KNOWLEDGE BASIN CONTEXT ==="


def kb_label(index: int) -> str:
    """Citation label for the match at 0-based *index*."""
    return f"[KB-{index + 1}]"


def build_knowledge_context(matches: Sequence[KnowledgeChunkMatch]) -> str:
    """Render *matches* in ranking order; ``[KB-n]`` labels are 1-based."""
    if not matches:
        return ""
    parts = [CONTEXT_HEADER]
    for i, match in enumerate(matches):
        parts.append(
            f'{kb_label(i)} docId={match.doc_id} title="{match.doc_title}" '
            f"chunkId={match.chunk_id} score={match.score:.3f}\n"
        )
        parts.append(f"{match.content}\n\n")
    parts.append(CONTEXT_FOOTER)
    return "".join(parts)


def to_knowledge_sources(matches: Sequence[KnowledgeChunkMatch]) -> list[KnowledgeSource]:
    return [
        KnowledgeSource(
            doc_id=m.doc_id,
            doc_title=m.doc_title,
            chunk_id=m.chunk_id,
            score=round(m.score, 4),
        )
        for m in matches
    ]
