"""LLM side of the KB-first flow, wired with LangChain.

:func:`build_llm_caller` turns a chat model into the ``call_llm``
collaborator; :func:`run_kb_first` runs a question against a basin end to
end. Without an injected model a local Hugging Face chat model is used.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from langchain_core.prompts import ChatPromptTemplate
from langchain_huggingface import ChatHuggingFace, HuggingFacePipeline

from claims_kb.config import (
    LOCAL_LLM_DEVICE,
    LOCAL_LLM_MAX_NEW_TOKENS,
    LOCAL_LLM_MODEL,
    LOCAL_LLM_REPETITION_PENALTY,
)
from claims_kb.models import KbFirstResult, KnowledgeChunkMatch
from claims_kb.query.context import NOT_FOUND_SENTENCE
from claims_kb.query.kb_first import execute_kb_first_flow
from claims_kb.query.retriever import KnowledgeBasin
from claims_kb.query.settings import normalize_knowledge_basin_settings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are Darwin, an assistant for property insurance claim adjusters. "
    "Answer using ONLY the knowledge basin context and the claim facts provided. "
    "Cite every statement with its [KB-n] label. "
    f'If the context does not contain the answer, reply exactly: "{NOT_FOUND_SENTENCE}" '
    "This is not legal advice."
)

USER_PROMPT = """{context}

Analysis type: {analysis_type}
Question: {question}"""


def _invoke_chain(prompt: ChatPromptTemplate, llm: Any, input_dict: dict) -> Awaitable[Any]:
    """Invoke prompt | llm asynchronously. Extracted for testability."""
    return (prompt | llm).ainvoke(input_dict)


@functools.lru_cache(maxsize=1)
def _create_llm() -> ChatHuggingFace:
    """Load the local answer model once per process; only reached on the match path."""
    logger.info("Loading local answer model %s (device=%s)", LOCAL_LLM_MODEL, LOCAL_LLM_DEVICE)
    llm = HuggingFacePipeline.from_model_id(
        model_id=LOCAL_LLM_MODEL,
        task="text-generation",
        model_kwargs={"device_map": LOCAL_LLM_DEVICE},
        pipeline_kwargs=dict(
            max_new_tokens=LOCAL_LLM_MAX_NEW_TOKENS,
            do_sample=False,
            repetition_penalty=LOCAL_LLM_REPETITION_PENALTY,
        ),
    )
    return ChatHuggingFace(llm=llm)


def build_llm_caller(
    question: str,
    llm: Any = None,
    system_prompt: str | None = None,
    analysis_type: str = "general",
) -> Callable[[str, Sequence[KnowledgeChunkMatch]], Awaitable[str]]:
    """Return ``call_llm(kb_context, matches) -> answer`` for *question*.

    The default local model is only loaded on the first call.
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", system_prompt or DEFAULT_SYSTEM_PROMPT),
            ("human", USER_PROMPT),
        ]
    )

    async def call_llm(kb_context: str, matches: Sequence[KnowledgeChunkMatch]) -> str:
        response = await _invoke_chain(
            prompt,
            llm if llm is not None else _create_llm(),
            {"context": kb_context, "analysis_type": analysis_type, "question": question},
        )
        content = getattr(response, "content", None)
        return content if content is not None else str(response)

    return call_llm


async def run_kb_first(
    question: str,
    basin: KnowledgeBasin,
    analysis_type: str = "general",
    settings: Mapping[str, Any] | Any = None,
    llm: Any = None,
    system_prompt: str | None = None,
) -> KbFirstResult[str]:
    """Answer *question* from *basin*, skipping the LLM when nothing matches."""
    normalized = normalize_knowledge_basin_settings(settings)
    return await execute_kb_first_flow(
        analysis_type,
        question,
        normalized,
        basin.asearch,
        build_llm_caller(question, llm, system_prompt, analysis_type),
        synonyms=basin.synonyms,
    )
