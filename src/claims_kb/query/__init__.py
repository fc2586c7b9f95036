"""Knowledge-basin retrieval and KB-first answering.

Submodules:
    settings   : Basin settings and their clamping normalizer.
    expand     : Synonym-driven query expansion (versioned synonym table).
    scoring    : Additive lexical scorer with configurable weights.
    select     : Per-document diversity selection and match merging.
    context    : Authoritative context block with [KB-n] citation labels.
    diagnostics: Retrieval health stats and empty-result hints.
    kb_first   : Retrieve-then-answer orchestrator and not-found response.
    retriever  : In-memory basin search and LangChain retriever.
    chain      : LLM caller (prompt | chat model) and end-to-end runner.
"""

from claims_kb.query import expand, kb_first
