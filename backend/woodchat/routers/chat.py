"""Chat and citation API endpoints."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from woodchat.database import get_session_factory
from woodchat.models.schemas import (
    ChatRequest,
    CitationRequest,
    CitationResponse,
    ErrorDetail,
)
from woodchat.services.chat_pipeline import classify_and_respond, request_citations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post("/chat")
async def chat(
    request: ChatRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> StreamingResponse:
    query = request.last_user_message().strip()
    if not query:
        raise HTTPException(
            status_code=422,
            detail=ErrorDetail(
                code="EMPTY_QUERY",
                message="Request must contain a non-empty user message",
            ).model_dump(),
        )

    conversation_id = request.conversation_id or uuid.uuid4().hex
    logger.info(
        "Chat request %s: %d messages, include_citations=%s",
        conversation_id,
        len(request.messages),
        request.include_citations,
    )

    async def event_stream() -> AsyncIterator[str]:
        async for event in classify_and_respond(
            query,
            request.messages,
            session_factory,
            conversation_id=conversation_id,
            include_citations=request.include_citations,
        ):
            yield event.to_sse()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"X-Conversation-Id": conversation_id, "Cache-Control": "no-cache"},
    )


@router.post("/citations", response_model=CitationResponse)
async def citations(
    request: CitationRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CitationResponse:
    return await request_citations(
        request.conversation_id, request.answer, session_factory
    )
