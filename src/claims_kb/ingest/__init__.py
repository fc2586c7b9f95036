"""Loading basin documents (JSON exports, LangChain documents)."""
from claims_kb.ingest.corpus import documents_from_langchain, load_documents

__all__ = ["documents_from_langchain", "load_documents"]
