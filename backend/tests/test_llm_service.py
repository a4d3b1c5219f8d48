"""Unit tests for llm_service.complete: mocks the GenAI client."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from woodchat.services import llm_service
from woodchat.services.errors import LLMError


@pytest.fixture
def mock_genai(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Mock the GenAI client so no real API calls are made."""
    mock_client = MagicMock()
    mock_client.aio.models.generate_content = AsyncMock(
        return_value=MagicMock(text="RELEVANT")
    )
    monkeypatch.setattr(llm_service, "_genai_client", mock_client)
    monkeypatch.setattr(llm_service, "get_genai_client", lambda: mock_client)
    return mock_client


async def test_complete_returns_text(mock_genai: MagicMock) -> None:
    text = await llm_service.complete(
        "Is this about woodworking?", system_instruction="Be brief", temperature=0.1
    )

    assert text == "RELEVANT"
    call = mock_genai.aio.models.generate_content.call_args
    assert call.kwargs["contents"] == "Is this about woodworking?"
    assert call.kwargs["model"] == llm_service.settings.utility_model
    config = call.kwargs["config"]
    assert config.system_instruction == "Be brief"
    assert config.temperature == pytest.approx(0.1)


async def test_complete_empty_response(mock_genai: MagicMock) -> None:
    mock_genai.aio.models.generate_content.return_value = MagicMock(text=None)
    assert await llm_service.complete("prompt") == ""


async def test_complete_timeout(mock_genai: MagicMock) -> None:
    async def slow(**kwargs):
        await asyncio.sleep(1)

    mock_genai.aio.models.generate_content.side_effect = slow

    with pytest.raises(LLMError) as exc_info:
        await llm_service.complete("prompt", timeout=0.01)

    assert exc_info.value.code == "LLM_TIMEOUT"


async def test_complete_provider_error(mock_genai: MagicMock) -> None:
    mock_genai.aio.models.generate_content.side_effect = RuntimeError("quota exceeded")

    with pytest.raises(LLMError) as exc_info:
        await llm_service.complete("prompt")

    assert exc_info.value.code == "LLM_ERROR"
    assert "quota exceeded" in exc_info.value.message
