"""Cached-or-generated session summaries."""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import aiosqlite

from chatmemory.errors import GenerationError, NoMessagesError, NotFoundError
from chatmemory.llm.client import generate as generate_text
from chatmemory.store.messages import get_session_messages
from chatmemory.store.sessions import (
    Session,
    get_session,
    now_ts,
    update_session_summary,
)
from chatmemory.summary.prompts import format_transcript, summary_instructions
from chatmemory.summary.styles import MAX_OUTPUT_TOKENS, validate_style

log = logging.getLogger(__name__)

MAX_TRANSCRIPT_MESSAGES = 500

# (transcript, instructions, max_tokens) -> summary text
GenerateFn = Callable[[str, str, int], Awaitable[str]]


class SkipReason(enum.Enum):
    NO_MESSAGES = "no_messages"
    GENERATION_FAILED = "generation_failed"


@dataclass
class SummaryOutcome:
    session_id: str
    summary: str | None = None
    cached: bool = False
    skip_reason: SkipReason | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.summary is not None


async def _generate_and_cache(
    db: aiosqlite.Connection,
    session: Session,
    style: str,
    generate: GenerateFn | None,
    logger: logging.Logger,
) -> str | None:
    """Summarize the session's transcript and cache it. None if there are no messages."""
    messages = await get_session_messages(db, session.id, limit=MAX_TRANSCRIPT_MESSAGES)
    if not messages:
        return None

    transcript = format_transcript(messages)
    logger.debug(
        "Generating %s summary for session %s (%d messages, %d chars)",
        style,
        session.id,
        len(messages),
        len(transcript),
    )
    fn = generate or generate_text
    summary = await fn(transcript, summary_instructions(style), MAX_OUTPUT_TOKENS[style])

    await update_session_summary(db, session.id, style, summary)
    return summary


async def summary_for(
    db: aiosqlite.Connection,
    session: Session,
    style: str,
    generate: GenerateFn | None = None,
    logger: logging.Logger | None = None,
) -> SummaryOutcome:
    """Return the session's summary for ``style``, generating it on a cache miss.

    Failures (no messages, any error while generating or caching) are
    reported in the outcome rather than raised, so a caller summarizing many
    sessions can carry on with the rest.
    """
    logger = logger or log

    cached = session.cached_summary(style)
    if cached:
        logger.debug("Using cached %s summary for session %s", style, session.id)
        return SummaryOutcome(session_id=session.id, summary=cached, cached=True)

    try:
        summary = await _generate_and_cache(db, session, style, generate, logger)
    except GenerationError as e:
        logger.error("Failed to generate summary for session %s: %s", session.id, e)
        return SummaryOutcome(
            session_id=session.id,
            skip_reason=SkipReason.GENERATION_FAILED,
            error=str(e),
        )
    except Exception as e:
        # Any other failure (bad backend response, custom generator) skips this session only.
        logger.exception("Unexpected error summarizing session %s", session.id)
        return SummaryOutcome(
            session_id=session.id,
            skip_reason=SkipReason.GENERATION_FAILED,
            error=f"{type(e).__name__}: {e}",
        )

    if summary is None:
        logger.warning("Session %s has no messages, skipping", session.id)
        return SummaryOutcome(session_id=session.id, skip_reason=SkipReason.NO_MESSAGES)

    return SummaryOutcome(session_id=session.id, summary=summary)


async def summarize_session(
    db: aiosqlite.Connection,
    session_id: str,
    style: str = "brief",
    force_refresh: bool = False,
    generate: GenerateFn | None = None,
    logger: logging.Logger | None = None,
) -> dict:
    """Summarize one session on request, honouring the cache unless forced.

    Unlike ``summary_for`` this raises on every failure, since the caller
    asked for exactly this summary.
    """
    logger = logger or log
    validate_style(style)

    session = await get_session(db, session_id)
    if session is None:
        raise NotFoundError(session_id)

    cached = session.cached_summary(style)
    if cached and not force_refresh:
        logger.debug("Returning cached %s summary for session %s", style, session_id)
        return {
            "session_id": session_id,
            "style": style,
            "summary": cached,
            "cached": True,
            "generated_at": session.updated_at or session.created_at,
        }

    summary = await _generate_and_cache(db, session, style, generate, logger)
    if summary is None:
        raise NoMessagesError(session_id)

    return {
        "session_id": session_id,
        "style": style,
        "summary": summary,
        "cached": False,
        "generated_at": now_ts(),
    }
