"""Pipeline orchestrator: classify, retrieve, stream the answer, extract citations."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import AsyncIterator
from enum import StrEnum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from woodchat.models.schemas import ChatMessage, CitationResponse, PipelineEvent
from woodchat.services.answer_service import stream_answer, stream_canned_response
from woodchat.services.citation_service import extract_video_references
from woodchat.services.embedding_service import embed_query
from woodchat.services.errors import ServiceError
from woodchat.services.format_validator import validate_answer_format
from woodchat.services.pending_context import pending_contexts
from woodchat.services.product_service import find_related_products
from woodchat.services.relevance_service import RelevanceLabel, classify_relevance
from woodchat.services.rewrite_service import rewrite_query
from woodchat.services.vector_store import format_context, search_chunks

logger = logging.getLogger(__name__)


class PipelineStage(StrEnum):
    CLASSIFYING = "CLASSIFYING"
    STREAMING_CANNED = "STREAMING_CANNED"
    REWRITING = "REWRITING"
    EMBEDDING = "EMBEDDING"
    RETRIEVING = "RETRIEVING"
    STREAMING_ANSWER = "STREAMING_ANSWER"
    DONE = "DONE"
    FAILED = "FAILED"


def _event(kind: str, **data: Any) -> PipelineEvent:
    return PipelineEvent(event=kind, data=data)


def error_event(code: str, message: str, stage: PipelineStage) -> PipelineEvent:
    return _event(
        "error",
        type="error",
        code=code,
        message=message,
        stage=stage.value,
        timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
    )


async def classify_and_respond(
    query: str,
    history: list[ChatMessage],
    session_factory: async_sessionmaker[AsyncSession],
    conversation_id: str | None = None,
    include_citations: bool = False,
) -> AsyncIterator[PipelineEvent]:
    """Run the chat pipeline for one question and yield its events in order.

    Non-RELEVANT questions get a canned reply and skip retrieval entirely.
    Fatal errors end the stream with a single ``error`` event.
    """
    conversation_id = conversation_id or uuid.uuid4().hex
    stage = PipelineStage.CLASSIFYING

    def enter(next_stage: PipelineStage) -> PipelineStage:
        logger.info("[%s] %s -> %s", conversation_id, stage, next_stage)
        return next_stage

    logger.info(
        "=== Chat request %s: query=%r history=%d turns ===",
        conversation_id,
        query,
        len(history),
    )
    try:
        label = await classify_relevance(query, history)
        yield _event("metadata", conversation_id=conversation_id, relevance=label.value)

        if label != RelevanceLabel.RELEVANT:
            stage = enter(PipelineStage.STREAMING_CANNED)
            async for token in stream_canned_response(label, query):
                yield _event("token", text=token)
            stage = enter(PipelineStage.DONE)
            yield _event(
                "done",
                conversation_id=conversation_id,
                relevance=label.value,
                format=None,
            )
            return

        stage = enter(PipelineStage.REWRITING)
        rewritten = await rewrite_query(query, history)

        stage = enter(PipelineStage.EMBEDDING)
        embedding = await embed_query(rewritten)

        stage = enter(PipelineStage.RETRIEVING)
        async with session_factory() as session:
            chunks = await search_chunks(session, embedding)
        context = format_context(chunks)
        if context:
            await pending_contexts.put(conversation_id, context, rewritten)
            yield _event(
                "context_ready",
                conversation_id=conversation_id,
                chunk_count=len(chunks),
            )

        stage = enter(PipelineStage.STREAMING_ANSWER)
        parts: list[str] = []
        async for token in stream_answer(query, history, context):
            parts.append(token)
            yield _event("token", text=token)
        answer = "".join(parts)
        report = validate_answer_format(answer)

        if context:
            if include_citations:
                citations = await request_citations(
                    conversation_id, answer, session_factory
                )
                payload = citations.model_dump(by_alias=True, mode="json")
                yield _event("citations", **payload)
            else:
                await pending_contexts.attach_answer(conversation_id, answer)

        stage = enter(PipelineStage.DONE)
        yield _event(
            "done",
            conversation_id=conversation_id,
            relevance=label.value,
            format=report.model_dump(),
        )
    except ServiceError as e:
        enter(PipelineStage.FAILED)
        logger.error(
            "[%s] Failed at %s: %s (%s)", conversation_id, stage, e.message, e.code
        )
        yield error_event(e.code, e.message, stage)
    except SQLAlchemyError as e:
        enter(PipelineStage.FAILED)
        logger.exception("[%s] Vector store query failed", conversation_id)
        yield error_event("VECTOR_STORE_ERROR", f"Document search failed: {e}", stage)
    except Exception as e:
        enter(PipelineStage.FAILED)
        logger.exception(
            "[%s] Unexpected pipeline failure at %s", conversation_id, stage
        )
        yield error_event("INTERNAL_ERROR", str(e) or type(e).__name__, stage)


async def request_citations(
    conversation_id: str,
    answer: str | None,
    session_factory: async_sessionmaker[AsyncSession],
) -> CitationResponse:
    """Extract video references and related products for a finished answer.

    Consumes the pending context for ``conversation_id`` once an answer is
    available: sent by the client, or attached when the stream finished.
    Clients that omit ``answer`` should wait for the ``done`` event. Without a
    usable context, or on any internal failure, the result is an empty but
    successful payload.
    """
    # Without a client answer, an entry still streaming is left for a later call
    entry = await pending_contexts.take(conversation_id, require_answer=not answer)
    if entry is None:
        logger.info(
            "[%s] No pending context with an answer, returning empty citations",
            conversation_id,
        )
        return CitationResponse()

    answer_text = answer or entry.answer
    if not answer_text:
        logger.info("[%s] Empty answer, returning empty citations", conversation_id)
        return CitationResponse()

    try:
        references = await extract_video_references(
            entry.context, entry.query, answer_text
        )
        titles = [r.video_title for r in references.values()]
        async with session_factory() as session:
            products = await find_related_products(session, titles)
    except Exception:
        logger.exception("[%s] Citation extraction failed", conversation_id)
        return CitationResponse()

    logger.info(
        "[%s] Citations: %d video references, %d products",
        conversation_id,
        len(references),
        len(products),
    )
    return CitationResponse(video_references=references, related_products=products)
