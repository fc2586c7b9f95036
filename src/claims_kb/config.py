"""Configuration for the claims knowledge-basin engine.

Values come from the environment (a local ``.env`` file is honoured) and
fall back to the defaults below when unset or malformed.
"""
from __future__ import annotations

import logging
import math
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]


def _env_path(key: str, default: Path) -> Path:
    raw = os.environ.get(key, "").strip()
    return Path(raw).expanduser() if raw else default


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", key, raw, default)
        return default


def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", key, raw, default)
        return default
    if not math.isfinite(value):
        return default
    return value


DATA_DIR = _env_path("DATA_DIR", REPO_ROOT / "data")

# Optional override for the synonym table; see query.expand.load_synonym_table.
_synonyms_env = os.environ.get("KB_SYNONYMS_PATH", "").strip()
SYNONYMS_PATH: Path | None = Path(_synonyms_env).expanduser() if _synonyms_env else None

MAX_EXPANDED_QUERIES = max(1, _env_int("KB_MAX_EXPANDED_QUERIES", 8))

# Lexical scoring weights (query.scoring.ScoringWeights.from_config)
KB_WEIGHT_FULL_QUERY = _env_float("KB_WEIGHT_FULL_QUERY", 20.0)
KB_WEIGHT_QUOTED_PHRASE = _env_float("KB_WEIGHT_QUOTED_PHRASE", 18.0)
KB_WEIGHT_LONG_TERM = _env_float("KB_WEIGHT_LONG_TERM", 2.0)
KB_WEIGHT_SHORT_TERM = _env_float("KB_WEIGHT_SHORT_TERM", 1.0)
KB_WEIGHT_TITLE_TERM = _env_float("KB_WEIGHT_TITLE_TERM", 1.5)
KB_WEIGHT_CATEGORY_TERM = _env_float("KB_WEIGHT_CATEGORY_TERM", 0.8)
KB_WEIGHT_TAG_TERM = _env_float("KB_WEIGHT_TAG_TERM", 1.0)

# Local LLM used by query.chain when no model is injected
LOCAL_LLM_MODEL = os.environ.get("LOCAL_LLM_MODEL", "TinyLlama/TinyLlama-1.1B-Chat-v1.0")
LOCAL_LLM_DEVICE = os.environ.get("LOCAL_LLM_DEVICE", "auto")
LOCAL_LLM_MAX_NEW_TOKENS = _env_int("LOCAL_LLM_MAX_NEW_TOKENS", 512)
LOCAL_LLM_REPETITION_PENALTY = _env_float("LOCAL_LLM_REPETITION_PENALTY", 1.05)
