"""Vector store adapter: cosine similarity search over transcript chunks in Postgres."""

from __future__ import annotations

import logging
import re

from pgvector.sqlalchemy import Vector
from sqlalchemy import Select, TableClause, column, select, table
from sqlalchemy.ext.asyncio import AsyncSession

from woodchat.config import settings
from woodchat.models.rag import DocumentChunk

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def chunk_table(name: str) -> TableClause:
    """Lightweight table clause for a chunk table.

    The name comes from configuration, never from user input, but it is
    still rendered into SQL so it must be a plain identifier.
    """
    if not _TABLE_NAME_RE.match(name):
        raise ValueError(f"Invalid chunk table name: {name!r}")
    return table(
        name,
        column("id"),
        column("text"),
        column("title"),
        column("url"),
        column("chunk_id"),
        column("vector", Vector(settings.embedding_dimensions)),
    )


def build_search_query(
    embedding: list[float], table_name: str, top_k: int
) -> Select:
    chunks = chunk_table(table_name)
    distance = chunks.c.vector.cosine_distance(embedding)
    return (
        select(
            chunks.c.id,
            chunks.c.text,
            chunks.c.title,
            chunks.c.url,
            chunks.c.chunk_id,
            (1 - distance).label("similarity_score"),
        )
        .where(chunks.c.vector.is_not(None))
        .order_by(distance, chunks.c.id)
        .limit(top_k)
    )


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


async def search_chunks(
    session: AsyncSession,
    embedding: list[float],
    table_name: str | None = None,
    top_k: int | None = None,
) -> list[DocumentChunk]:
    """Return the ``top_k`` chunks nearest to ``embedding``, best first.

    Similarity is ``1 - cosine_distance`` clamped to [0, 1]. Ties are broken
    by id. Store errors propagate to the caller.
    """
    table_name = table_name or settings.chunk_table
    top_k = settings.retrieval_top_k if top_k is None else top_k
    if top_k < 1:
        raise ValueError(f"top_k must be positive, got {top_k}")

    logger.info(
        "Vector search: table=%s top_k=%d dims=%d", table_name, top_k, len(embedding)
    )
    result = await session.execute(build_search_query(embedding, table_name, top_k))
    rows = result.mappings().all()

    chunks = [
        DocumentChunk(
            id=str(row["id"]),
            text=row["text"],
            title=row["title"],
            url=row["url"],
            chunk_id=str(row["chunk_id"]),
            similarity_score=_clamp(float(row["similarity_score"])),
        )
        for row in rows
    ]
    chunks.sort(key=lambda c: (-c.similarity_score, _id_key(c.id)))
    chunks = chunks[:top_k]

    logger.info("Vector search returned %d chunks from %s", len(chunks), table_name)
    for c in chunks:
        logger.debug(
            "  chunk id=%s score=%.3f title=%r", c.id, c.similarity_score, c.title
        )
    return chunks


def _id_key(chunk_id: str) -> tuple[int, int | str]:
    # Numeric ids sort numerically, anything else lexically after them
    return (0, int(chunk_id)) if chunk_id.isdigit() else (1, chunk_id)


def format_context(chunks: list[DocumentChunk]) -> str:
    """Concatenate chunks into the context block handed to the models."""
    return "\n\n".join(
        f"Source: {c.title}\nContent: {c.text}\nURL: {c.url}" for c in chunks
    )
