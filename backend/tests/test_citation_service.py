"""Unit tests for citation_service: marker parsing, description cleanup, extraction."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from woodchat.models.rag import (
    VideoReference,
    combine_url_and_timestamp,
    timestamp_to_seconds,
)
from woodchat.services import citation_service
from woodchat.services.citation_service import (
    clean_description,
    extract_video_references,
    parse_video_references,
)
from woodchat.services.errors import LLMError

EXAMPLE_LINE = (
    "{{timestamp:05:30}}{{title:Workshop Tour}}"
    "{{url:https://youtube.com/abc}}{{description:Shows chisel sharpening.}}"
)


class TestParseVideoReferences:
    def test_single_reference(self) -> None:
        refs = parse_video_references(EXAMPLE_LINE)
        assert list(refs) == ["0"]
        ref = refs["0"]
        assert ref.timestamp == "05:30"
        assert ref.video_title == "Workshop Tour"
        assert ref.urls == ["https://youtube.com/abc"]
        assert ref.description == "Chisel sharpening"

    def test_missing_url_is_dropped(self) -> None:
        line = (
            "{{timestamp:05:30}}{{title:Workshop Tour}}"
            "{{description:Shows chisel sharpening.}}"
        )
        assert parse_video_references(line) == {}

    def test_keys_follow_extraction_order(self) -> None:
        raw = "\n".join(
            [
                "{{timestamp:01:00}}{{title:A}}{{url:https://y.com/a}}{{description:First}}",
                "garbage line the model added",
                "{{timestamp:02:00}}{{title:B}}{{url:https://y.com/b}}",
                "{{timestamp:03:00}}{{title:C}}{{url:https://y.com/c}}{{description:Third}}",
            ]
        )
        refs = parse_video_references(raw)
        assert list(refs) == ["0", "1"]
        assert refs["0"].video_title == "A"
        assert refs["1"].video_title == "C"

    def test_timestamp_must_be_mm_ss(self) -> None:
        raw = "{{timestamp:1:05:30}}{{title:A}}{{url:https://y.com/a}}{{description:x}}"
        assert parse_video_references(raw) == {}

    def test_field_cannot_span_lines(self) -> None:
        raw = (
            "{{timestamp:01:00}}{{title:A\nB}}{{url:https://y.com/a}}"
            "{{description:Split title}}"
        )
        assert parse_video_references(raw) == {}

    def test_garbage_does_not_raise(self) -> None:
        assert parse_video_references("}}{{ {{timestamp:}} {{{{") == {}
        assert parse_video_references("") == {}


class TestCleanDescription:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Shows chisel sharpening.", "Chisel sharpening"),
            ("This video covers glue-ups. Then more.", "Covers glue-ups"),
            ("Here we flatten a board", "We flatten a board"),
            ("In this clip Jason cuts dovetails.", "Jason cuts dovetails"),
            ("This clip explains clamps", "Explains clamps"),
            ("Demonstrates a tenon jig. Also stops.", "A tenon jig"),
            ("  routing a dado  ", "Routing a dado"),
        ],
    )
    def test_cleanup(self, raw: str, expected: str) -> None:
        assert clean_description(raw) == expected

    def test_only_leading_phrase_is_stripped(self) -> None:
        assert clean_description("Jason Shows the trick") == "Jason Shows the trick"


class TestDeepLink:
    def test_timestamp_to_seconds(self) -> None:
        assert timestamp_to_seconds("05:30") == 330
        assert timestamp_to_seconds("01:02:03") == 3723
        assert timestamp_to_seconds("soon") is None

    def test_combine_url(self) -> None:
        assert combine_url_and_timestamp("https://y.com/abc", "05:30") == (
            "https://y.com/abc?t=330"
        )
        assert combine_url_and_timestamp("https://y.com/watch?v=1", "00:10") == (
            "https://y.com/watch?v=1&t=10"
        )
        assert combine_url_and_timestamp("https://y.com/abc", "bad") == (
            "https://y.com/abc"
        )

    def test_reference_serializes_deep_link(self) -> None:
        ref = VideoReference(
            urls=["https://youtube.com/abc"],
            timestamp="05:30",
            video_title="Workshop Tour",
            description="Chisel sharpening",
        )
        assert ref.model_dump()["deep_link"] == "https://youtube.com/abc?t=330"


class TestExtractVideoReferences:
    @patch.object(citation_service.llm_service, "complete", new_callable=AsyncMock)
    async def test_parses_model_output(self, mock_complete: AsyncMock) -> None:
        mock_complete.return_value = EXAMPLE_LINE + "\nnot a marker\n"
        context = "Source: Workshop Tour\nContent: ...\nURL: https://youtube.com/abc"

        refs = await extract_video_references(context, "chisel advice", "Answer text")

        assert len(refs) == 1
        assert refs["0"].video_title == "Workshop Tour"
        prompt = mock_complete.call_args.args[0]
        assert "Context:\n" + context in prompt
        assert "Original Question: chisel advice" in prompt
        assert "AI Answer: Answer text" in prompt
        kwargs = mock_complete.call_args.kwargs
        assert kwargs["system_instruction"] == citation_service.VIDEO_EXTRACTION_PROMPT
        assert kwargs["temperature"] == pytest.approx(0.1)

    @patch.object(citation_service.llm_service, "complete", new_callable=AsyncMock)
    async def test_provider_error_propagates(self, mock_complete: AsyncMock) -> None:
        mock_complete.side_effect = LLMError(code="LLM_TIMEOUT", message="slow")
        with pytest.raises(LLMError):
            await extract_video_references("ctx", "q", "a")
