"""Pydantic request/response/error schemas."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from woodchat.models.rag import Product, VideoReference

# --- Chat API schemas ---


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
    conversation_id: str | None = Field(default=None, max_length=100)
    include_citations: bool = False

    def last_user_message(self) -> str:
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


# --- Streamed pipeline events ---


class PipelineEvent(BaseModel):
    event: Literal["metadata", "context_ready", "token", "citations", "error", "done"]
    data: dict[str, Any]

    def to_sse(self) -> str:
        """Serialize as a server-sent event frame."""
        return f"event: {self.event}\ndata: {json.dumps(self.data)}\n\n"


# --- Citation API schemas ---


class CitationRequest(BaseModel):
    conversation_id: str = Field(max_length=100)
    answer: str | None = None


class CitationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_references: dict[str, VideoReference] = Field(
        default_factory=dict, alias="videoReferences"
    )
    related_products: list[Product] = Field(
        default_factory=list, alias="relatedProducts"
    )
    status: Literal["success"] = "success"


# --- Suggested questions ---


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_text: str


# --- Output-format diagnostics ---


class FormatReport(BaseModel):
    compliant: bool
    section_headers: int
    issues: list[str] = []


# --- Error schema ---


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = {}
