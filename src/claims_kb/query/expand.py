"""Synonym-driven query expansion for knowledge-basin retrieval.

Generates lexical variants of an adjuster's question from a table of
property-claim jargon, so that a question about "ACV" also reaches chunks
that only say "actual cash value".

The synonym table is a versioned JSON resource. It is loaded from an
explicit path when given, otherwise from ``KB_SYNONYMS_PATH``,
``DATA_DIR/synonyms.json`` or the package default
(``claims_kb/data/synonyms.json``).
"""
from __future__ import annotations

import functools
import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from claims_kb import config

logger = logging.getLogger(__name__)

MAX_RELATED_HINTS = 4


@dataclass(frozen=True)
class SynonymTable:
    """Lowercased term -> ordered synonyms, plus the resource version."""

    version: str
    entries: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)


def parse_synonym_table(data: Any, version: str = "unversioned") -> SynonymTable:
    """Build a :class:`SynonymTable` from decoded JSON or a plain mapping.

    Accepts either ``{"version": ..., "synonyms": {...}}`` or a bare
    ``{term: [synonym, ...]}`` mapping. Blank keys and non-string synonyms
    are dropped.
    """
    if isinstance(data, Mapping) and isinstance(data.get("synonyms"), Mapping):
        version = str(data.get("version", version))
        data = data["synonyms"]
    if not isinstance(data, Mapping):
        raise ValueError("Synonym table must be a JSON object of term -> synonyms")

    entries: dict[str, tuple[str, ...]] = {}
    for key, values in data.items():
        if not isinstance(key, str) or not key.strip():
            continue
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, (list, tuple)):
            continue
        cleaned = tuple(v.strip() for v in values if isinstance(v, str) and v.strip())
        if cleaned:
            entries[key.strip().lower()] = cleaned
    return SynonymTable(version=version, entries=entries)


def load_synonym_table(path: Path | str | None = None) -> SynonymTable:
    """Load the synonym table from *path*, the environment, DATA_DIR, or the package."""
    if path is not None:
        path = Path(path)
        return parse_synonym_table(
            json.loads(path.read_text(encoding="utf-8")), version=path.stem
        )

    raw: str | None = None
    origin = ""

    # 1. KB_SYNONYMS_PATH override
    if config.SYNONYMS_PATH is not None:
        try:
            raw = config.SYNONYMS_PATH.read_text(encoding="utf-8")
            origin = str(config.SYNONYMS_PATH)
        except OSError as e:
            logger.warning(
                "Could not read KB_SYNONYMS_PATH %s: %s; falling back",
                config.SYNONYMS_PATH,
                e,
            )

    # 2. DATA_DIR/synonyms.json
    if raw is None:
        data_path = config.DATA_DIR / "synonyms.json"
        if data_path.exists():
            try:
                raw = data_path.read_text(encoding="utf-8")
                origin = str(data_path)
            except OSError as e:
                logger.warning("Could not read %s: %s; using package default", data_path, e)

    # 3. Package default
    if raw is None:
        from importlib.resources import files

        pkg_path = files("claims_kb") / "data" / "synonyms.json"
        try:
            raw = pkg_path.read_text(encoding="utf-8")
            origin = "package default"
        except Exception as e:
            raise FileNotFoundError(
                f"Synonym table not found in KB_SYNONYMS_PATH, DATA_DIR, or package default: {e}"
            ) from e

    table = parse_synonym_table(json.loads(raw))
    logger.debug(
        "Loaded synonym table version %s (%d terms) from %s",
        table.version,
        len(table),
        origin,
    )
    return table


@functools.lru_cache(maxsize=1)
def get_synonym_table() -> SynonymTable:
    """Return the default synonym table (loaded once per process)."""
    return load_synonym_table()


def _resolve_entries(
    synonyms: SynonymTable | Mapping[str, Sequence[str]] | None,
) -> Mapping[str, tuple[str, ...]]:
    if synonyms is None:
        return get_synonym_table().entries
    if isinstance(synonyms, SynonymTable):
        return synonyms.entries
    return parse_synonym_table(synonyms).entries


def _dedupe(queries: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for q in queries:
        q = q.strip()
        if q and q not in seen:
            seen.add(q)
            out.append(q)
    return out


def expand_knowledge_queries(
    question: str,
    max_queries: int | None = None,
    synonyms: SynonymTable | Mapping[str, Sequence[str]] | None = None,
) -> list[str]:
    """Expand a question into lexical variants for retrieval.

    The trimmed question is always first. For every table term found in
    the question (case-insensitive substring), each synonym contributes an
    appended variant (``"<question> | <synonym>"``) and a substituted
    variant where whole-word occurrences of the term are replaced. A final
    ``related terms`` variant lists up to four unique synonyms. Results are
    deduplicated and truncated to *max_queries* (default
    ``KB_MAX_EXPANDED_QUERIES``).
    """
    base = (question or "").strip()
    limit = config.MAX_EXPANDED_QUERIES if max_queries is None else int(max_queries)
    if not base or limit < 1:
        return []

    entries = _resolve_entries(synonyms)
    lowered = base.lower()
    variants = [base]
    hints: list[str] = []

    for term, values in entries.items():
        if term not in lowered:
            continue
        pattern = re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)
        for synonym in values:
            variants.append(f"{base} | {synonym}")
            variants.append(pattern.sub(lambda _m, s=synonym: s, base))
            hints.append(synonym)

    if hints:
        related = list(dict.fromkeys(hints))[:MAX_RELATED_HINTS]
        variants.append(f"{base} | related terms: {', '.join(related)}")

    return _dedupe(variants)[:limit]
