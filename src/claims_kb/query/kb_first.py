"""KB-first answering: retrieve evidence, and only then call the LLM.

The flow is a single pass. ``kb_search`` runs first; if it yields no
matches the caller gets a structured not-found response and the LLM is
never invoked. Otherwise the matches are rendered into the knowledge
context and handed to ``call_llm``. Exceptions from either collaborator
propagate unchanged.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TypeVar, Union

from claims_kb.models import (
    KbFirstNoMatchResponse,
    KbFirstResult,
    KnowledgeChunkMatch,
    KnowledgeSearchResult,
    QueryExpansionDebug,
    RetrievalDebug,
)
from claims_kb.query.context import build_knowledge_context, to_knowledge_sources
from claims_kb.query.diagnostics import diagnose_retrieval
from claims_kb.query.expand import SynonymTable, expand_knowledge_queries
from claims_kb.query.settings import KnowledgeBasinSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

KbSearch = Callable[
    [str, KnowledgeBasinSettings],
    Awaitable[Union[Sequence[KnowledgeChunkMatch], KnowledgeSearchResult]],
]
CallLlm = Callable[[str, Sequence[KnowledgeChunkMatch]], Awaitable[T]]

MAX_SUGGESTED_QUERIES = 3

CLARIFYING_QUESTION = (
    "Can you share the exact policy clause, document title, or phrase you want "
    "me to retrieve from the Knowledge Base?"
)

NEXT_STEPS: tuple[str, ...] = (
    "Try one of the suggested queries.",
    'Use exact clause or document names, or put key phrases in quotes (e.g. "ordinance and law").',
    "Upload or reprocess the document that should contain the answer.",
)

STRICT_MODE_DISCLAIMER = (
    "KB-only mode is on: I can only answer using your AI knowledge basin documents right now."
)


def build_not_found_kb_message(
    analysis_type: str,
    settings: KnowledgeBasinSettings,
    expanded_queries: Sequence[str] = (),
    diagnostic_hint: str | None = None,
) -> KbFirstNoMatchResponse:
    result = f'Not found in Knowledge Base for "{analysis_type}".'
    if settings.strict:
        result = f"{result} {STRICT_MODE_DISCLAIMER}"
    return KbFirstNoMatchResponse(
        result=result,
        clarifying_question=CLARIFYING_QUESTION,
        suggested_queries=tuple(expanded_queries[1 : 1 + MAX_SUGGESTED_QUERIES]),
        next_steps=NEXT_STEPS,
        diagnostic_hint=diagnostic_hint,
    )


async def execute_kb_first_flow(
    analysis_type: str,
    query: str,
    settings: KnowledgeBasinSettings,
    kb_search: KbSearch,
    call_llm: CallLlm[T],
    *,
    synonyms: SynonymTable | Mapping[str, Sequence[str]] | None = None,
    diagnostic_hint: str | None = None,
) -> KbFirstResult[T]:
    """Run retrieval and, only when evidence exists, the LLM call.

    *kb_search* may return the matches directly or a
    :class:`KnowledgeSearchResult`; its health stats are recorded in the
    retrieval debug and, absent a caller-supplied *diagnostic_hint*, used to
    explain an empty result. When it reports the variants it searched, those
    are recorded; otherwise the query is expanded with *synonyms*.
    """
    found = await kb_search(query, settings)
    searched: tuple[str, ...] = ()
    if isinstance(found, KnowledgeSearchResult):
        matches = list(found.matches)
        health = found.health
        searched = found.queries
    else:
        matches = list(found)
        health = None

    expanded = list(searched) or expand_knowledge_queries(query, synonyms=synonyms)
    retrieval = RetrievalDebug(
        pool=settings.pool,
        top_k=settings.top_k,
        per_doc_cap=settings.per_doc_cap,
        query_expansion=QueryExpansionDebug(queries=tuple(expanded)),
        health=health,
    )

    if not matches:
        hint = diagnostic_hint
        if hint is None and health is not None:
            hint = health.diagnostic_hint or diagnose_retrieval(health, settings)
        logger.info(
            "KB-first %s: no KB evidence; skipping LLM (hint=%s)",
            analysis_type,
            "yes" if hint else "no",
        )
        return KbFirstResult(
            used_kb=False,
            skipped_llm=True,
            retrieval=retrieval,
            sources=(),
            not_found_response=build_not_found_kb_message(
                analysis_type, settings, expanded, hint
            ),
        )

    context = build_knowledge_context(matches)
    logger.info(
        "KB-first %s: %d KB chunks from %d documents",
        analysis_type,
        len(matches),
        len({m.doc_id for m in matches}),
    )
    llm_result = await call_llm(context, matches)
    return KbFirstResult(
        used_kb=True,
        skipped_llm=False,
        retrieval=retrieval,
        sources=tuple(to_knowledge_sources(matches)),
        llm_result=llm_result,
    )
