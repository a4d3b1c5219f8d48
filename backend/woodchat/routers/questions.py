"""Suggested question endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from woodchat.database import get_session
from woodchat.models.schemas import QuestionResponse
from woodchat.services.question_service import get_random_questions

router = APIRouter(prefix="/api/v1/questions", tags=["questions"])


@router.get("/random", response_model=list[QuestionResponse])
async def random_questions(
    session: AsyncSession = Depends(get_session),
) -> list[QuestionResponse]:
    return list(await get_random_questions(session))
