"""Query rewriter: makes the user's question more specific for retrieval."""

from __future__ import annotations

import logging

from woodchat.models.schemas import ChatMessage
from woodchat.services import llm_service
from woodchat.services.relevance_service import serialize_history

logger = logging.getLogger(__name__)

REWRITE_PROMPT = """\
You are Bent's Woodworking assistant, so questions will be related to the wood shop.
Rewrite the user query to make it more specific and searchable, taking into account
the chat history if provided. Only return the rewritten query without any explanations.

Original query: {query}
Chat history: {history}

Rewritten query:"""

_PREFIX = "Rewritten query:"


def clean_rewrite(raw: str) -> str:
    text = raw.strip()
    if text.lower().startswith(_PREFIX.lower()):
        text = text[len(_PREFIX) :]
    return text.strip().strip('"').strip()


async def rewrite_query(query: str, history: list[ChatMessage] | None = None) -> str:
    """Return a retrieval-friendly rewrite, or ``query`` itself on any failure."""
    history = history or []
    logger.info("Query rewrite: query=%r history=%d turns", query, len(history))
    prompt = REWRITE_PROMPT.format(query=query, history=serialize_history(history))
    try:
        raw = await llm_service.complete(prompt, temperature=0.0)
    except Exception as e:
        logger.warning("Query rewrite failed, using original query: %s", e)
        return query

    rewritten = clean_rewrite(raw)
    if not rewritten:
        logger.warning("Query rewrite returned nothing, using original query")
        return query
    logger.info("Query rewritten: %r -> %r", query, rewritten)
    return rewritten
