"""Suggested starter questions."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from woodchat.models.orm import Question
from woodchat.models.schemas import QuestionResponse

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS = [
    QuestionResponse(
        id=1,
        question_text="What tools do you recommend for a beginner woodworker?",
    ),
    QuestionResponse(
        id=2,
        question_text="How can I improve my workshop organization?",
    ),
    QuestionResponse(
        id=3,
        question_text="What safety equipment should I have in my shop?",
    ),
]


async def get_random_questions(
    session: AsyncSession, limit: int = 3
) -> Sequence[QuestionResponse]:
    """Random questions from the store, or the defaults if none are available."""
    try:
        result = await session.execute(
            select(Question).order_by(func.random()).limit(limit)
        )
        rows = result.scalars().all()
    except Exception:
        logger.exception("Fetching random questions failed, using defaults")
        return DEFAULT_QUESTIONS

    if not rows:
        return DEFAULT_QUESTIONS
    return [QuestionResponse.model_validate(q) for q in rows]
