"""Build an injection block from one session or from a keyword query."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

import aiosqlite

from chatmemory.injection.aggregator import aggregate
from chatmemory.injection.formatter import format_injection_block
from chatmemory.injection.resolver import DEFAULT_TOP_K, resolve_sessions
from chatmemory.store.sessions import now_ts
from chatmemory.summary.generator import GenerateFn
from chatmemory.summary.styles import BRIEF, validate_style

log = logging.getLogger(__name__)


@dataclass
class InjectionBlock:
    injection_block: str
    sources: list[str] = field(default_factory=list)
    generated_at: int = 0


async def generate_injection_block(
    db: aiosqlite.Connection,
    session_id: str | None = None,
    query: str | None = None,
    style: str = BRIEF,
    top_k: int = DEFAULT_TOP_K,
    generate: GenerateFn | None = None,
    logger: logging.Logger | None = None,
    today: date | None = None,
) -> InjectionBlock:
    """Build an injection block from one session or from a keyword query.

    Raises InvalidRequestError, NotFoundError or NoResultsError before any
    formatting happens; per-session summary failures only thin the content.
    """
    logger = logger or log
    validate_style(style)
    logger.debug(
        "Generating injection block: session_id=%s query=%r style=%s",
        session_id,
        query,
        style,
    )

    sessions, topic = await resolve_sessions(
        db, session_id=session_id, query=query, top_k=top_k, logger=logger
    )
    content = await aggregate(
        db, sessions, topic, style, generate=generate, logger=logger, today=today
    )
    text = format_injection_block(content, style)

    logger.info(
        "Injection block generated: %d sessions, style=%s, %d chars",
        len(sessions),
        style,
        len(text),
    )
    return InjectionBlock(
        injection_block=text,
        sources=list(content.sources.session_ids),
        generated_at=now_ts(),
    )
