"""Embedding client: query and batch embeddings with bounded wait and retries."""

from __future__ import annotations

import asyncio
import logging

import httpx
from google.genai import types

from woodchat.config import settings
from woodchat.services.errors import EmbeddingError
from woodchat.services.llm_service import get_genai_client

logger = logging.getLogger(__name__)

_VERTEX_PREDICT_URL = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)


def _predict_request(texts: list[str], task_type: str) -> tuple[str, dict]:
    url = _VERTEX_PREDICT_URL.format(
        location=settings.gcp_location,
        project=settings.gcp_project_id,
        model=settings.embedding_model,
    )
    body = {
        "instances": [{"content": t, "task_type": task_type} for t in texts],
        "parameters": {"outputDimensionality": settings.embedding_dimensions},
    }
    return url, body


def _vertex_embed_via_api_key(texts: list[str], task_type: str) -> list[list[float]]:
    """Call Vertex AI embedding endpoint directly using GCP API key."""
    url, body = _predict_request(texts, task_type)
    resp = httpx.post(
        url, params={"key": settings.google_api_key}, json=body, timeout=30
    )
    resp.raise_for_status()
    return [p["embeddings"]["values"] for p in resp.json()["predictions"]]


async def _async_vertex_embed_via_api_key(
    texts: list[str], task_type: str
) -> list[list[float]]:
    """Async version: call Vertex AI embedding endpoint using GCP API key."""
    url, body = _predict_request(texts, task_type)
    async with httpx.AsyncClient() as client:
        resp = await client.post(
            url,
            params={"key": settings.google_api_key},
            json=body,
            timeout=settings.embedding_timeout_seconds,
        )
    resp.raise_for_status()
    return [p["embeddings"]["values"] for p in resp.json()["predictions"]]


async def _embed_once(text: str) -> list[float]:
    if settings.google_api_key:
        vectors = await _async_vertex_embed_via_api_key([text], "RETRIEVAL_QUERY")
        return list(vectors[0])
    client = get_genai_client()
    response = await client.aio.models.embed_content(
        model=settings.embedding_model,
        contents=[text],
        config=types.EmbedContentConfig(
            output_dimensionality=settings.embedding_dimensions,
            task_type="RETRIEVAL_QUERY",
        ),
    )
    return list(response.embeddings[0].values)


async def embed_query(text: str) -> list[float]:
    """Embed a query string for vector search.

    Each attempt is bounded by ``embedding_timeout_seconds``; a failed attempt
    is retried up to ``embedding_max_retries`` times. Exhausting the retries
    raises EmbeddingError, the pipeline treats that as fatal for the request.
    """
    if not text.strip():
        raise EmbeddingError(code="EMPTY_INPUT", message="Cannot embed an empty query")

    logger.debug(
        "Embedding query (%d chars): %r",
        len(text),
        text[:100] + ("..." if len(text) > 100 else ""),
    )
    attempts = settings.embedding_max_retries + 1
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            async with asyncio.timeout(settings.embedding_timeout_seconds):
                vector = await _embed_once(text)
        except Exception as e:
            last_error = e
            logger.warning(
                "Embedding attempt %d/%d failed: %s",
                attempt,
                attempts,
                str(e) or type(e).__name__,
            )
            continue

        if len(vector) != settings.embedding_dimensions:
            raise EmbeddingError(
                code="EMBEDDING_DIMENSION_MISMATCH",
                message=(
                    f"Expected {settings.embedding_dimensions}-dim vector, "
                    f"got {len(vector)}"
                ),
            )
        logger.debug("Embedded query -> %d-dim vector", len(vector))
        return vector

    raise EmbeddingError(
        code="EMBEDDING_FAILED",
        message=f"Embedding failed after {attempts} attempts: {last_error!r}",
    )


def embed_batch(texts: list[str]) -> list[list[float]]:
    """Embed a batch of transcript chunks for indexing."""
    logger.info(
        "Embedding batch of %d texts (model=%s, dims=%d)",
        len(texts),
        settings.embedding_model,
        settings.embedding_dimensions,
    )
    if settings.google_api_key:
        vectors = _vertex_embed_via_api_key(texts, "RETRIEVAL_DOCUMENT")
    else:
        client = get_genai_client()
        response = client.models.embed_content(
            model=settings.embedding_model,
            contents=texts,
            config=types.EmbedContentConfig(
                output_dimensionality=settings.embedding_dimensions,
                task_type="RETRIEVAL_DOCUMENT",
            ),
        )
        vectors = [list(e.values) for e in response.embeddings]
    logger.info("Embedded %d texts -> %d vectors", len(texts), len(vectors))
    return vectors
