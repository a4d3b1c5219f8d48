"""Pydantic models for RAG: retrieved chunks, video references and products."""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field


def timestamp_to_seconds(timestamp: str) -> int | None:
    """Convert ``MM:SS`` or ``HH:MM:SS`` to total seconds, None if malformed."""
    parts = timestamp.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        return None
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part)
    return seconds


def combine_url_and_timestamp(url: str, timestamp: str) -> str:
    """Append a ``t=<seconds>`` parameter so the link opens at the timestamp."""
    seconds = timestamp_to_seconds(timestamp)
    if seconds is None:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={seconds}"


class DocumentChunk(BaseModel):
    """A transcript chunk returned by vector search with its similarity score."""

    id: str
    text: str
    title: str
    url: str
    chunk_id: str
    similarity_score: float = Field(ge=0.0, le=1.0)


class VideoReference(BaseModel):
    """A video segment cited by a generated answer."""

    urls: list[str]
    timestamp: str
    video_title: str
    description: str

    @computed_field
    @property
    def deep_link(self) -> str:
        if not self.urls:
            return ""
        return combine_url_and_timestamp(self.urls[0], self.timestamp)


class Product(BaseModel):
    """A catalog product related to a cited video."""

    id: str
    title: str
    tags: list[str]
    link: str
