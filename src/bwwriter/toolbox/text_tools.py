"""
Text tools backed by the generation core.

Both tools ask a provider for a structured answer and fall back to a
deterministic local computation when the provider cannot produce a
schema-valid result, so a flaky model never fails the request.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import List, Literal

from pydantic import BaseModel, Field

from ..exceptions import ToolValidationError
from ..generation import GenerationClient
from ..models import resolve_config
from ..tools import Tool, tool

logger = logging.getLogger(__name__)

Source = Literal["llm", "fallback"]

STOPWORDS = frozenset(
    """
    a an and are as at be been but by for from has have he her his i if in into is it its
    me my no not of on or our she so than that the their them then there these they this
    to too was we were what when where which who will with you your
    """.split()
)

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_WORD = re.compile(r"[A-Za-z][A-Za-z'-]+")


class SummaryResult(BaseModel):
    summary: str
    source: Source = "llm"


class KeywordsResult(BaseModel):
    keywords: List[str]
    source: Source = "llm"


class _SummaryDraft(BaseModel):
    summary: str = Field(min_length=1)


class _KeywordsDraft(BaseModel):
    keywords: List[str] = Field(min_length=1)


def _require_text(tool_name: str, text: str) -> str:
    if not text.strip():
        raise ToolValidationError(
            tool_name=tool_name,
            param_name="text",
            issue="Text cannot be empty",
            suggestion="Pass the text to process",
        )
    return text.strip()


def _require_positive(tool_name: str, name: str, value: int) -> None:
    if value < 1:
        raise ToolValidationError(
            tool_name=tool_name,
            param_name=name,
            issue=f"Must be at least 1, got {value}",
        )


def leading_sentences(text: str, max_sentences: int) -> str:
    """First ``max_sentences`` sentences of ``text``."""
    sentences = [s.strip() for s in _SENTENCE_END.split(text.strip()) if s.strip()]
    return " ".join(sentences[:max_sentences])


def frequent_keywords(text: str, limit: int) -> List[str]:
    """Most frequent non-stopwords, ties broken by first appearance."""
    words = [w.lower() for w in _WORD.findall(text)]
    counts = Counter(w for w in words if w not in STOPWORDS and len(w) > 2)
    first_seen = {}
    for index, word in enumerate(words):
        first_seen.setdefault(word, index)
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:limit]


async def summarize_text(
    text: str,
    max_sentences: int = 3,
    *,
    client: GenerationClient,
    llm: str,
) -> SummaryResult:
    """Summarize text in a few sentences."""
    body = _require_text("summarize_text", text)
    _require_positive("summarize_text", "max_sentences", max_sentences)

    result = await client.invoke(
        f"Summarize the following text in at most {max_sentences} sentences.\n\n{body}",
        llm,
        schema=_SummaryDraft,
        system_message="You write faithful, concise summaries.",
    )
    if result.ok and result.data is not None:
        return SummaryResult(summary=result.data["summary"].strip())

    logger.info("summarize_text falling back to leading sentences: %s", result.reason)
    return SummaryResult(summary=leading_sentences(body, max_sentences), source="fallback")


async def extract_keywords(
    text: str,
    limit: int = 5,
    *,
    client: GenerationClient,
    llm: str,
) -> KeywordsResult:
    """Extract the most relevant keywords from text."""
    body = _require_text("extract_keywords", text)
    _require_positive("extract_keywords", "limit", limit)

    result = await client.invoke(
        f"List at most {limit} keywords that best describe the following text.\n\n{body}",
        llm,
        schema=_KeywordsDraft,
    )
    if result.ok and result.data is not None:
        keywords = [k.strip() for k in result.data["keywords"] if k.strip()]
        if keywords:
            return KeywordsResult(keywords=keywords[:limit])

    logger.info("extract_keywords falling back to word frequency: %s", result.reason)
    return KeywordsResult(keywords=frequent_keywords(body, limit), source="fallback")


def get_tools(client: GenerationClient, llm: str) -> List[Tool]:
    """Build the text tools bound to ``client`` and the preset ``llm``."""
    key = resolve_config(llm).key
    credentials = [key] if key else []
    injected = {"client": client, "llm": llm}

    return [
        tool(
            description="Summarize text in a few sentences",
            param_metadata={
                "text": {"description": "Text to summarize"},
                "max_sentences": {"description": "Upper bound on summary sentences"},
            },
            credentials=credentials,
            output_model=SummaryResult,
            injected_kwargs=injected,
        )(summarize_text),
        tool(
            description="Extract the most relevant keywords from text",
            param_metadata={
                "text": {"description": "Text to analyze"},
                "limit": {"description": "Maximum number of keywords"},
            },
            credentials=credentials,
            output_model=KeywordsResult,
            injected_kwargs=injected,
        )(extract_keywords),
    ]


__all__ = [
    "summarize_text",
    "extract_keywords",
    "leading_sentences",
    "frequent_keywords",
    "SummaryResult",
    "KeywordsResult",
    "get_tools",
]
