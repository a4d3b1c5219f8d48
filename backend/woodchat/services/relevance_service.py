"""Relevance classifier: gates retrieval on the intent of the user's question."""

from __future__ import annotations

import json
import logging
import re
from enum import StrEnum

from woodchat.config import settings
from woodchat.models.schemas import ChatMessage
from woodchat.services import llm_service

logger = logging.getLogger(__name__)


class RelevanceLabel(StrEnum):
    GREETING = "GREETING"
    RELEVANT = "RELEVANT"
    INAPPROPRIATE = "INAPPROPRIATE"
    NOT_RELEVANT = "NOT_RELEVANT"


RELEVANCE_PROMPT = """\
Given this question and chat history, determine if it is:
1. A greeting/send-off (GREETING)
2. Related to woodworking/tools/company (RELEVANT)
3. Inappropriate content (INAPPROPRIATE)
4. Unrelated (NOT_RELEVANT)

Chat History: {history}
Current Question: {query}

Response (GREETING, RELEVANT, INAPPROPRIATE, or NOT_RELEVANT):"""

_NOT_RELEVANT_RE = re.compile(r"\bNOT[\s\-_]+RELEVANT\b")
_TOKEN_RE = re.compile(r"[A-Z_]+")


def serialize_history(history: list[ChatMessage]) -> str:
    return json.dumps([m.model_dump() for m in history])


def parse_label(raw: str) -> RelevanceLabel:
    """Map raw model output to a label; anything unrecognised is NOT_RELEVANT."""
    text = _NOT_RELEVANT_RE.sub("NOT_RELEVANT", raw.strip().upper())
    match = _TOKEN_RE.search(text)
    if match is None:
        return RelevanceLabel.NOT_RELEVANT
    try:
        return RelevanceLabel(match.group(0))
    except ValueError:
        return RelevanceLabel.NOT_RELEVANT


async def classify_relevance(
    query: str, history: list[ChatMessage]
) -> RelevanceLabel:
    """Classify the query using the most recent turns of history.

    Provider failures raise LLMError; they are not mapped to a label.
    """
    recent = history[-settings.history_window :] if settings.history_window else []
    logger.info("Relevance check: query=%r history=%d turns", query, len(history))
    prompt = RELEVANCE_PROMPT.format(history=serialize_history(recent), query=query)
    raw = await llm_service.complete(prompt, temperature=0.0)
    label = parse_label(raw)
    logger.info("Relevance result: raw=%r label=%s", raw.strip()[:50], label)
    return label
