"""Injection tool: memory_inject."""

from __future__ import annotations

import aiosqlite

from chatmemory.injection.injector import generate_injection_block
from chatmemory.tools.schemas import InjectInput, validate


async def memory_inject(
    db: aiosqlite.Connection,
    session_id: str | None = None,
    query: str | None = None,
    style: str = "brief",
    top_k: int = 5,
) -> dict:
    """Build a memory injection block from one session or a cross-session query."""
    args = validate(
        InjectInput, session_id=session_id, query=query, style=style, top_k=top_k
    )
    result = await generate_injection_block(
        db,
        session_id=args.session_id,
        query=args.query,
        style=args.style,
        top_k=args.top_k,
    )
    return {
        "injection_block": result.injection_block,
        "sources": result.sources,
        "generated_at": result.generated_at,
        "style": args.style,
        "method": "session" if args.session_id else "query",
    }
