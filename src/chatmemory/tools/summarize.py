"""Summary tool: memory_summarize_session."""

from __future__ import annotations

import aiosqlite

from chatmemory.summary.generator import summarize_session
from chatmemory.tools.schemas import SummarizeInput, validate


async def memory_summarize_session(
    db: aiosqlite.Connection,
    session_id: str,
    style: str = "brief",
    force_refresh: bool = False,
) -> dict:
    args = validate(
        SummarizeInput,
        session_id=session_id,
        style=style,
        force_refresh=force_refresh,
    )
    return await summarize_session(
        db, args.session_id, style=args.style, force_refresh=args.force_refresh
    )
