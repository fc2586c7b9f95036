#!/usr/bin/env python3
"""Interactive REPL for KB-first questions against a basin export.

Usage:
  python scripts/query.py data/basin.json
  python scripts/query.py data/basin.json --top-k 5 --per-doc-cap 2 --strict
  python scripts/query.py data/basin.json --no-llm   # show retrieval only
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from claims_kb.ingest import load_documents
from claims_kb.query.context import build_knowledge_context
from claims_kb.query.kb_first import execute_kb_first_flow
from claims_kb.query.retriever import KnowledgeBasin
from claims_kb.query.settings import normalize_knowledge_basin_settings

try:
    import readline

    _HISTORY_PATH = Path.home() / ".claims_kb_query_history"
    _READLINE_AVAILABLE = True
except ImportError:
    _READLINE_AVAILABLE = False
    _HISTORY_PATH = None

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Claims knowledge-basin query REPL")
    parser.add_argument("basin", type=Path, help="JSON basin export")
    parser.add_argument(
        "--analysis-type", default="general", help="Analysis type label (default: general)"
    )
    parser.add_argument("--pool", type=int, help="Candidate pool size (10-2000)")
    parser.add_argument("--top-k", type=int, help="Chunks passed to the LLM (1-100)")
    parser.add_argument("--per-doc-cap", type=int, help="Max chunks per document (1-20)")
    parser.add_argument(
        "--category", action="append", dest="categories", help="Restrict to category (repeatable)"
    )
    parser.add_argument("--tag", action="append", dest="tags", help="Restrict to tag (repeatable)")
    parser.add_argument("--strict", action="store_true", help="KB-only mode disclaimer")
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Print the knowledge context instead of calling the LLM",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger("claims_kb").setLevel(logging.DEBUG)

    if not args.basin.exists():
        print(f"Error: basin file not found at {args.basin}.", file=sys.stderr)
        return 1
    try:
        documents = load_documents(args.basin)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    settings = normalize_knowledge_basin_settings(
        {
            "pool": args.pool,
            "top_k": args.top_k,
            "per_doc_cap": args.per_doc_cap,
            "strict": args.strict,
            "categories": args.categories,
            "tags": args.tags,
        }
    )
    basin = KnowledgeBasin(documents)

    if _READLINE_AVAILABLE and _HISTORY_PATH is not None:
        try:
            readline.read_history_file(_HISTORY_PATH)
        except OSError:
            pass

    print(f"Knowledge basin: {len(basin)} documents (blank line to quit)")
    print("---")
    try:
        _repl_loop(basin, settings, args.analysis_type, args.no_llm)
    finally:
        if _READLINE_AVAILABLE and _HISTORY_PATH is not None:
            try:
                readline.write_history_file(_HISTORY_PATH)
            except OSError:
                pass

    print("Bye.")
    return 0


def _make_llm_caller(question: str, analysis_type: str, no_llm: bool):
    if no_llm:

        async def show_context(kb_context, matches):
            return build_knowledge_context(matches)

        return show_context

    from claims_kb.query.chain import build_llm_caller

    return build_llm_caller(question, analysis_type=analysis_type)


def _repl_loop(basin, settings, analysis_type: str, no_llm: bool) -> None:
    while True:
        try:
            question = input("Question (blank to quit): ").strip()
        except EOFError:
            break
        if not question:
            break
        try:
            result = asyncio.run(
                execute_kb_first_flow(
                    analysis_type,
                    question,
                    settings,
                    basin.asearch,
                    _make_llm_caller(question, analysis_type, no_llm),
                )
            )
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        print()
        if result.skipped_llm:
            payload = result.not_found_response.to_dict()
            print(payload["result"])
            print(payload["clarifyingQuestion"])
            for q in payload["suggestedQueries"]:
                print(f"  try: {q}")
            if payload.get("diagnosticHint"):
                print(f"  hint: {payload['diagnosticHint']}")
        else:
            print(result.llm_result)
            print()
            print("Sources:")
            for i, source in enumerate(result.sources, start=1):
                print(f"  [KB-{i}] {source.doc_title} ({source.chunk_id}) score={source.score}")
        if logging.getLogger("claims_kb").isEnabledFor(logging.DEBUG):
            print(json.dumps(result.retrieval.to_dict(), indent=2))
        print("---")


if __name__ == "__main__":
    sys.exit(main())
