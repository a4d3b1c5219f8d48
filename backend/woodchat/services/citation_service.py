"""Citation extractor: finds the video segments an answer drew on."""

from __future__ import annotations

import logging
import re

from woodchat.models.rag import VideoReference
from woodchat.services import format_validator, llm_service

logger = logging.getLogger(__name__)

VIDEO_EXTRACTION_PROMPT = """\
Based on the provided context and question, identify relevant video references.
For each relevant point, you must provide all four pieces in this exact format:
{{timestamp:MM:SS}}{{title:EXACT Video Title}}{{url:EXACT YouTube URL}}{{description:EXACT CONTENT}}

Rules:
1. Only include videos that are directly relevant to the question
2. Each video reference must be on its own line
3. Must include all four pieces (timestamp, title, URL, description) for each reference
4. Only extract videos and timestamps that are explicitly mentioned in the provided context
5. You must use the EXACT timestamp mentioned in the context - DO NOT make up or estimate timestamps
6. Each timestamp must precisely match the timestamp mentioned in the context for that specific content
7. Format must be exact - no spaces between the parts
8. The description must be concise and exactly what content is shown at that timestamp
9. Never default to video start times or guess timestamps
10. Copy video titles verbatim from the context

Example:
Context: "At 12:45 in Workshop Basics (https://yt.com/abc), Ben shows chisel sharpening. \
Later at 15:20, he demonstrates using the chisel."
Should output:
{{timestamp:12:45}}{{title:Workshop Basics}}{{url:https://yt.com/abc}}{{description:Demonstration of chisel sharpening technique}}
{{timestamp:15:20}}{{title:Workshop Basics}}{{url:https://yt.com/abc}}{{description:Demonstration of proper chisel usage}}

Important: extract the EXACT timestamp where each specific topic is discussed."""

VIDEO_MARKER_RE = re.compile(
    r"\{\{timestamp:(\d{2}:\d{2})\}\}"
    r"\{\{title:([^}\n]+)\}\}"
    r"\{\{url:([^}\n]+)\}\}"
    r"\{\{description:([^}\n]+)\}\}"
)

_BOILERPLATE_RE = re.compile(
    r"^(This video |Here |In this clip |This clip |Shows |Demonstrates )"
)


def clean_description(description: str) -> str:
    """First sentence, leading boilerplate removed, first letter capitalised."""
    text = description.strip().split(".")[0]
    text = _BOILERPLATE_RE.sub("", text).strip()
    return text[:1].upper() + text[1:]


def parse_video_references(raw: str) -> dict[str, VideoReference]:
    """Parse citation markers; text that does not match is ignored."""
    references: dict[str, VideoReference] = {}
    for i, match in enumerate(VIDEO_MARKER_RE.finditer(raw)):
        timestamp, title, url, description = match.groups()
        references[str(i)] = VideoReference(
            urls=[url.strip()],
            timestamp=timestamp,
            video_title=title.strip(),
            description=clean_description(description),
        )
    return references


async def extract_video_references(
    context: str, query: str, answer: str
) -> dict[str, VideoReference]:
    """Ask the model which context videos the answer used and parse the markers."""
    logger.info(
        "Citation extraction: context=%d chars answer=%d chars",
        len(context),
        len(answer),
    )
    prompt = (
        f"Context:\n{context}\n\n"
        f"Original Question: {query}\n\n"
        f"AI Answer: {answer}\n\n"
        "Extract relevant video references:"
    )
    raw = await llm_service.complete(
        prompt, system_instruction=VIDEO_EXTRACTION_PROMPT, temperature=0.1
    )
    format_validator.citation_line_stats(raw)
    references = parse_video_references(raw)

    unknown = [r.video_title for r in references.values() if r.video_title not in context]
    if unknown:
        logger.warning(
            "%d extracted titles not found in context: %s", len(unknown), unknown
        )
    logger.info("Extracted %d video references", len(references))
    return references
