"""Service-level exceptions carrying a machine-readable code."""

from __future__ import annotations


class ServiceError(Exception):
    """Raised when a pipeline component fails in a way the caller must see."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class LLMError(ServiceError):
    """Raised when a single-shot completion fails or times out."""


class EmbeddingError(ServiceError):
    """Raised when the query embedding cannot be produced."""


class AnswerGenerationError(ServiceError):
    """Raised when the streamed answer fails."""
