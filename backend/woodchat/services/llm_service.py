"""Single-shot completions (classification, rewriting, extraction) via Google GenAI."""

from __future__ import annotations

import asyncio
import logging

from google import genai
from google.genai import types

from woodchat.config import settings
from woodchat.services.errors import LLMError

logger = logging.getLogger(__name__)

_genai_client: genai.Client | None = None


def get_genai_client() -> genai.Client:
    """Get or create the Google GenAI client.

    Uses Vertex AI express mode when GOOGLE_API_KEY is set, ADC otherwise.
    The same client instance exposes both sync (client.models) and async
    (client.aio.models) interfaces.
    """
    global _genai_client
    if _genai_client is None:
        if settings.google_api_key:
            _genai_client = genai.Client(vertexai=True, api_key=settings.google_api_key)
        else:
            _genai_client = genai.Client(
                vertexai=True,
                project=settings.gcp_project_id,
                location=settings.gcp_location,
            )
    return _genai_client


async def complete(
    prompt: str,
    *,
    system_instruction: str | None = None,
    temperature: float = 0.0,
    timeout: float | None = None,
) -> str:
    """Run one completion and return its text, bounded by a timeout."""
    timeout = settings.llm_timeout_seconds if timeout is None else timeout
    logger.debug(
        "Completion request: model=%s temperature=%.1f prompt=%r",
        settings.utility_model,
        temperature,
        prompt[:200] + ("..." if len(prompt) > 200 else ""),
    )
    client = get_genai_client()
    try:
        async with asyncio.timeout(timeout):
            response = await client.aio.models.generate_content(
                model=settings.utility_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    temperature=temperature,
                ),
            )
    except TimeoutError:
        raise LLMError(
            code="LLM_TIMEOUT",
            message=f"Completion did not finish within {timeout:.0f}s",
        )
    except Exception as e:
        raise LLMError(code="LLM_ERROR", message=f"Completion failed: {e}") from e

    text = response.text or ""
    logger.debug("Completion response (%d chars): %r", len(text), text[:200])
    return text
