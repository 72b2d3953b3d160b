"""Async Anthropic API wrapper for summary generation."""

from __future__ import annotations

import logging

import anthropic

from chatmemory import config
from chatmemory.errors import GenerationError

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3


def _get_client() -> anthropic.AsyncAnthropic:
    return anthropic.AsyncAnthropic()


async def generate(
    transcript: str,
    instructions: str,
    max_tokens: int,
    model: str | None = None,
) -> str:
    """Run one non-streaming completion over a conversation transcript.

    Raises GenerationError if the API key is missing or the request fails.
    """
    if not config.api_key_configured():
        raise GenerationError(
            "Anthropic API key not configured. Set ANTHROPIC_API_KEY environment variable."
        )

    client = _get_client()
    try:
        response = await client.messages.create(
            model=model or config.model(),
            max_tokens=max_tokens,
            temperature=TEMPERATURE,
            messages=[
                {
                    "role": "user",
                    "content": f"{instructions}\n\nConversation:\n{transcript}",
                }
            ],
        )
    except anthropic.APIError as e:
        raise GenerationError(f"Failed to generate summary: {e}") from e

    text = "".join(block.text for block in response.content if block.type == "text")
    logger.info(
        "Summary generated: %d chars, %d tokens used",
        len(text),
        response.usage.input_tokens + response.usage.output_tokens,
    )
    return text
