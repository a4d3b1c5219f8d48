"""Answer generation: streams model output through the Claude Agent SDK."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from claude_agent_sdk import (
    AssistantMessage,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    ClaudeAgentOptions,
    ProcessError,
    ResultMessage,
    StreamEvent,
    TextBlock,
    query,
)

from woodchat.config import settings
from woodchat.models.schemas import ChatMessage
from woodchat.services.errors import AnswerGenerationError
from woodchat.services.relevance_service import RelevanceLabel, serialize_history

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTIONS = """\
You are an AI assistant representing Jason Bent's woodworking expertise. Your role is to:
1. Analyze woodworking documents and provide clear, natural responses that sound like \
Jason Bent is explaining the concepts.
2. Convert technical content into conversational, easy-to-understand explanations.
3. Focus on explaining the core concepts and techniques rather than quoting directly \
from transcripts.
4. Always maintain a friendly, professional tone as if Jason Bent is speaking directly \
to the user.
5. Organize multi-part responses clearly with natural transitions.
6. Keep responses concise and focused on the specific question asked.
7. If information isn't available in the provided context, clearly state that.
8. Always respond in English, regardless of the input language.
9. Avoid phrases like "in the video" or "the transcript shows"; speak directly about \
the techniques and concepts.

RESPONSE STRUCTURE AND FORMATTING:
- Use markdown formatting with a clear hierarchical structure
- Each major section must start with '### ' followed by a number and bold title
- Format section headers as: ### 1. **Title Here**
- Use bullet points (-) for detailed explanations under each section
- Each bullet point must contain 2-3 sentences minimum with examples
- Add blank lines between major sections only
- Do NOT use bold formatting (**) or line breaks within bullet point content
- Bold formatting should ONLY be used in section headers
- Keep all content within a bullet point on the same line
- Any asterisks (*) in the content are literal characters, not formatting

REMEMBER:
- You speak as Jason Bent's AI assistant. When mentioning him, say "Jason Bent" \
instead of "I", e.g. "Jason Bent will suggest that you..."
- Explain the concepts naturally rather than quoting transcripts
- Keep responses clear, practical, and focused on woodworking expertise
"""

CANNED_PROMPTS: dict[RelevanceLabel, str] = {
    RelevanceLabel.GREETING: (
        "The following message is a greeting or casual message. "
        "Please provide a friendly and engaging response: {query}"
    ),
    RelevanceLabel.INAPPROPRIATE: (
        'Please respond with the following message: "I apologize, but I cannot '
        "assist with inappropriate content or queries that could cause harm. I'm "
        'here to help with woodworking and furniture making questions only."'
    ),
    RelevanceLabel.NOT_RELEVANT: (
        "The following question is not directly related to woodworking or the "
        "assistant's expertise. Provide a direct response that:\n"
        "1. Politely acknowledges the question\n"
        "2. Explains that you are specialized in woodworking and Jason Bent's content\n"
        "3. Asks them to rephrase their question to relate to woodworking topics\n"
        "Question: {query}"
    ),
}


def build_answer_prompt(
    question: str, history: list[ChatMessage], context: str
) -> str:
    recent = history[-settings.history_window :] if settings.history_window else []
    return (
        f"Chat History:\n{serialize_history(recent)}\n\n"
        f"Context:\n{context}\n\n"
        f"Question: {question}"
    )


def build_canned_prompt(label: RelevanceLabel, question: str) -> str:
    return CANNED_PROMPTS[label].format(query=question)


def _text_delta(event: dict) -> str | None:
    if event.get("type") != "content_block_delta":
        return None
    delta = event.get("delta") or {}
    if delta.get("type") != "text_delta":
        return None
    return delta.get("text") or None


def _log_result_message(message: ResultMessage) -> None:
    logger.info(
        "ResultMessage: num_turns=%d duration=%dms cost=$%.4f is_error=%s",
        message.num_turns,
        message.duration_ms,
        message.total_cost_usd or 0,
        message.is_error,
    )


async def stream_completion(
    prompt: str, system_prompt: str | None = None
) -> AsyncIterator[str]:
    """Yield answer tokens in order as the model produces them.

    ``answer_timeout_seconds`` bounds the time spent waiting on the model;
    time the caller spends between tokens is not counted. Any failure raises
    AnswerGenerationError; tokens already yielded stay with the caller and no
    retry is attempted.
    """
    options = ClaudeAgentOptions(
        system_prompt=system_prompt,
        model=settings.ai_model,
        max_turns=1,
        allowed_tools=[],
        include_partial_messages=True,
        permission_mode="bypassPermissions",
    )
    logger.info(
        "Streaming completion: model=%s prompt=%d chars", settings.ai_model, len(prompt)
    )
    loop = asyncio.get_running_loop()
    budget = settings.answer_timeout_seconds
    streamed = False
    got_result = False
    try:
        messages = query(prompt=prompt, options=options)
        while True:
            started = loop.time()
            try:
                async with asyncio.timeout(budget):
                    message = await anext(messages)
            except StopAsyncIteration:
                break
            budget -= loop.time() - started

            if isinstance(message, StreamEvent):
                text = _text_delta(message.event)
                if text:
                    streamed = True
                    yield text
            elif isinstance(message, AssistantMessage):
                logger.debug("AssistantMessage received (model=%s)", message.model)
                if not streamed:
                    # No partial deltas delivered; fall back to the full text blocks
                    for block in message.content:
                        if isinstance(block, TextBlock) and block.text:
                            yield block.text
                    streamed = True
            elif isinstance(message, ResultMessage):
                _log_result_message(message)
                if message.is_error:
                    raise AnswerGenerationError(
                        code="AGENT_ERROR",
                        message=message.result or "Model returned an error",
                    )
                got_result = True
    except AnswerGenerationError:
        raise
    except TimeoutError:
        raise AnswerGenerationError(
            code="ANSWER_TIMEOUT",
            message=f"Answer stream exceeded {settings.answer_timeout_seconds:.0f}s",
        )
    except CLINotFoundError:
        raise AnswerGenerationError(
            code="CLI_NOT_FOUND",
            message="Claude Code CLI not found. Ensure it is installed.",
        )
    except CLIConnectionError as e:
        if got_result:
            logger.warning("CLIConnectionError after result received (ignoring): %s", e)
        else:
            raise AnswerGenerationError(
                code="CLI_CONNECTION_ERROR",
                message=f"Failed to connect to Claude CLI: {e}",
            )
    except BaseExceptionGroup as eg:
        # query.close() can race transport shutdown against in-flight control
        # requests; the SDK task group then wraps CLIConnectionError.
        cli_errors = eg.subgroup(CLIConnectionError)
        if cli_errors and got_result:
            logger.warning(
                "CLIConnectionError in task group after result (ignoring): %s",
                cli_errors.exceptions[0],
            )
        elif cli_errors:
            raise AnswerGenerationError(
                code="CLI_CONNECTION_ERROR",
                message=f"Failed to connect to Claude CLI: {cli_errors.exceptions[0]}",
            )
        else:
            raise
    except ProcessError as e:
        raise AnswerGenerationError(
            code="PROCESS_ERROR",
            message=f"Agent process failed: {e}",
        )
    except CLIJSONDecodeError as e:
        raise AnswerGenerationError(
            code="JSON_DECODE_ERROR",
            message=f"Failed to parse model response: {e}",
        )

    if not got_result:
        raise AnswerGenerationError(
            code="NO_RESULT",
            message="Model stream ended without a result message",
        )


def stream_answer(
    question: str, history: list[ChatMessage], context: str
) -> AsyncIterator[str]:
    """Stream a grounded answer in the house markdown format."""
    prompt = build_answer_prompt(question, history, context)
    return stream_completion(prompt, system_prompt=SYSTEM_INSTRUCTIONS)


def stream_canned_response(label: RelevanceLabel, question: str) -> AsyncIterator[str]:
    """Stream the reply for a question that does not get retrieval."""
    return stream_completion(build_canned_prompt(label, question))
