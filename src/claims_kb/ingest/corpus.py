"""Loading knowledge-basin documents into memory.

Two sources are supported: a JSON basin export and LangChain documents
(one ``Document`` per chunk, grouped by ``doc_id`` metadata).

JSON shape (either a bare list of documents or ``{"documents": [...]}``)::

    {"docId": "doc-1", "title": "Roof Claims Playbook", "status": "completed",
     "category": "training-materials", "tags": ["roofing"],
     "chunks": [{"chunkId": "doc-1-0", "content": "...", "metadata": {...}}]}
"""
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from langchain_core.documents import Document

from claims_kb.models import KnowledgeChunkCandidate, KnowledgeDocument

logger = logging.getLogger(__name__)


def _first(item: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return default


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v.strip() for v in value if isinstance(v, str) and v.strip())


def document_from_dict(item: Mapping[str, Any]) -> KnowledgeDocument:
    """Build a :class:`KnowledgeDocument` from one JSON record.

    Raises ValueError when the record has no document id.
    """
    doc_id = _first(item, "docId", "doc_id", "id")
    if not doc_id:
        raise ValueError(f"Basin document without an id: {dict(item)!r:.120}")
    doc_id = str(doc_id)
    title = str(_first(item, "title", "docTitle", "file_name", default=doc_id))
    category = _first(item, "category")

    chunks: list[KnowledgeChunkCandidate] = []
    for i, raw in enumerate(item.get("chunks") or []):
        if not isinstance(raw, Mapping):
            continue
        metadata = raw.get("metadata")
        chunks.append(
            KnowledgeChunkCandidate(
                chunk_id=str(_first(raw, "chunkId", "chunk_id", "id", default=f"{doc_id}-{i}")),
                doc_id=doc_id,
                doc_title=title,
                content=str(raw.get("content") or ""),
                category=str(category) if category is not None else None,
                metadata=dict(metadata) if isinstance(metadata, Mapping) else None,
            )
        )

    return KnowledgeDocument(
        doc_id=doc_id,
        title=title,
        status=str(_first(item, "status", default="completed")),
        category=str(category) if category is not None else None,
        tags=_str_tuple(item.get("tags")),
        chunks=tuple(chunks),
    )


def load_documents(path: Path | str) -> list[KnowledgeDocument]:
    """Read a JSON basin export. Raises ValueError on an unexpected shape."""
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        data = data.get("documents")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of documents or {{'documents': [...]}}")
    documents = [document_from_dict(item) for item in data if isinstance(item, Mapping)]
    logger.info(
        "Loaded %d documents (%d chunks) from %s",
        len(documents),
        sum(len(d.chunks) for d in documents),
        path,
    )
    return documents


def documents_from_langchain(
    docs: Iterable[Document], default_status: str = "completed"
) -> list[KnowledgeDocument]:
    """Group chunk-level LangChain documents into basin documents.

    Document-level fields (title, status, category, tags) come from the
    first chunk seen for each ``doc_id``.
    """
    grouped: dict[str, list[Document]] = {}
    for doc in docs:
        doc_id = str(doc.metadata.get("doc_id", "") or "unknown")
        grouped.setdefault(doc_id, []).append(doc)

    out: list[KnowledgeDocument] = []
    for doc_id, chunk_docs in grouped.items():
        head = chunk_docs[0].metadata
        title = str(head.get("title") or head.get("doc_title") or doc_id)
        category = head.get("category")
        chunks = tuple(
            KnowledgeChunkCandidate(
                chunk_id=str(
                    d.metadata.get("chunk_id") or f"{doc_id}-{d.metadata.get('chunk_index', i)}"
                ),
                doc_id=doc_id,
                doc_title=title,
                content=d.page_content,
                category=str(category) if category is not None else None,
                metadata=dict(d.metadata),
            )
            for i, d in enumerate(chunk_docs)
        )
        out.append(
            KnowledgeDocument(
                doc_id=doc_id,
                title=title,
                status=str(head.get("status") or default_status),
                category=str(category) if category is not None else None,
                tags=_str_tuple(head.get("tags")),
                chunks=chunks,
            )
        )
    return out
