"""Knowledge-basin settings and their normalization.

Raw settings arrive from request payloads and stored basin configuration,
so every field is treated as untrusted. Normalization is total: it never
raises and always yields a consistent :class:`KnowledgeBasinSettings`.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_POOL = 500
DEFAULT_TOP_K = 10
DEFAULT_PER_DOC_CAP = 3
DEFAULT_STATUSES: tuple[str, ...] = ("completed", "processed")

POOL_RANGE = (10, 2000)
TOP_K_RANGE = (1, 100)
PER_DOC_CAP_RANGE = (1, 20)
SOFT_POOL_PER_DOC_CAP_MAX = 50


@dataclass(frozen=True)
class KnowledgeBasinSettings:
    """Validated retrieval configuration.

    Invariants: ``top_k <= pool`` and ``soft_pool_per_doc_cap >= per_doc_cap``.
    Build instances with :func:`normalize_knowledge_basin_settings`.
    """

    pool: int = DEFAULT_POOL
    top_k: int = DEFAULT_TOP_K
    per_doc_cap: int = DEFAULT_PER_DOC_CAP
    soft_pool_per_doc_cap: int = max(DEFAULT_PER_DOC_CAP + 1, math.ceil(DEFAULT_TOP_K / 2))
    strict: bool = False
    statuses: tuple[str, ...] = DEFAULT_STATUSES
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "pool": self.pool,
            "topK": self.top_k,
            "perDocCap": self.per_doc_cap,
            "softPoolPerDocCap": self.soft_pool_per_doc_cap,
            "strict": self.strict,
            "statuses": list(self.statuses),
            "categories": list(self.categories),
            "tags": list(self.tags),
        }


# snake_case field -> accepted camelCase alias
_ALIASES = {
    "top_k": "topK",
    "per_doc_cap": "perDocCap",
    "soft_pool_per_doc_cap": "softPoolPerDocCap",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _to_finite_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def clamp_int(value: Any, fallback: int, low: int, high: int) -> int:
    """Round *value* to an int within ``[low, high]``; *fallback* if unusable."""
    number = _to_finite_number(value)
    if number is None:
        return fallback
    return min(high, max(low, _round_half_up(number)))


def normalize_string_list(value: Any, fallback: tuple[str, ...]) -> tuple[str, ...]:
    """Keep non-empty trimmed strings; return *fallback* if none survive."""
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        return fallback
    normalized = tuple(
        item.strip() for item in value if isinstance(item, str) and item.strip()
    )
    return normalized if normalized else fallback


def _raw_lookup(raw: Any, name: str) -> Any:
    if raw is None:
        return None
    if isinstance(raw, KnowledgeBasinSettings):
        return getattr(raw, name)
    if isinstance(raw, Mapping):
        if name in raw:
            return raw[name]
        alias = _ALIASES.get(name)
        if alias is not None:
            return raw.get(alias)
        return None
    return getattr(raw, name, None)


def normalize_knowledge_basin_settings(raw: Any = None) -> KnowledgeBasinSettings:
    """Return fully-populated settings from a partial or untrusted input.

    *raw* may be ``None``, a mapping with snake_case or camelCase keys, or
    any object exposing the settings attributes.
    """
    pool = clamp_int(_raw_lookup(raw, "pool"), DEFAULT_POOL, *POOL_RANGE)
    top_k = min(clamp_int(_raw_lookup(raw, "top_k"), DEFAULT_TOP_K, *TOP_K_RANGE), pool)
    per_doc_cap = clamp_int(
        _raw_lookup(raw, "per_doc_cap"), DEFAULT_PER_DOC_CAP, *PER_DOC_CAP_RANGE
    )
    soft_default = max(per_doc_cap + 1, math.ceil(top_k / 2))
    soft_pool_per_doc_cap = clamp_int(
        _raw_lookup(raw, "soft_pool_per_doc_cap"),
        min(soft_default, SOFT_POOL_PER_DOC_CAP_MAX),
        per_doc_cap,
        SOFT_POOL_PER_DOC_CAP_MAX,
    )
    return KnowledgeBasinSettings(
        pool=pool,
        top_k=top_k,
        per_doc_cap=per_doc_cap,
        soft_pool_per_doc_cap=soft_pool_per_doc_cap,
        strict=bool(_raw_lookup(raw, "strict")),
        statuses=normalize_string_list(_raw_lookup(raw, "statuses"), DEFAULT_STATUSES),
        categories=normalize_string_list(_raw_lookup(raw, "categories"), ()),
        tags=normalize_string_list(_raw_lookup(raw, "tags"), ()),
    )
