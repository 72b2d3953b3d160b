"""Session and message tools: save, list, get, search."""

from __future__ import annotations

import time

import aiosqlite

from chatmemory.errors import NotFoundError
from chatmemory.store.fts import highlight_snippet, smart_search
from chatmemory.store.messages import (
    count_messages,
    get_session_messages,
    insert_messages,
    search_messages,
)
from chatmemory.store.sessions import Session, create_session, get_session, list_sessions
from chatmemory.tools.schemas import (
    GetSessionInput,
    ListSessionsInput,
    SaveMessagesInput,
    SaveSessionInput,
    SearchInput,
    validate,
)


def _format_session_row(s: Session) -> dict:
    return {
        "id": s.id,
        "title": s.title,
        "tags": s.tags,
        "created_at": s.created_at,
        "updated_at": s.updated_at,
        "summary_brief": s.summary_brief,
    }


async def memory_save_session(
    db: aiosqlite.Connection,
    title: str,
    tags: list[str] | None = None,
    meta: dict | None = None,
) -> dict:
    """Create a session and return its id."""
    args = validate(SaveSessionInput, title=title, tags=tags, meta=meta)
    session = await create_session(db, args.title, tags=args.tags, meta=args.meta)
    return {
        "success": True,
        "session_id": session.id,
        "title": session.title,
        "created_at": session.created_at,
        "tags": session.tags,
        "meta": session.meta,
    }


async def memory_save_messages(
    db: aiosqlite.Connection,
    session_id: str,
    messages: list[dict],
) -> dict:
    """Append messages to an existing session."""
    args = validate(SaveMessagesInput, session_id=session_id, messages=messages)

    if await get_session(db, args.session_id) is None:
        raise NotFoundError(args.session_id)

    saved = await insert_messages(
        db,
        args.session_id,
        [m.model_dump() for m in args.messages],
    )
    return {
        "success": True,
        "session_id": args.session_id,
        "saved_count": len(saved),
        "message_ids": [m.id for m in saved],
    }


async def memory_list_sessions(
    db: aiosqlite.Connection,
    limit: int = 20,
    offset: int = 0,
    tags: list[str] | None = None,
) -> dict:
    """Page through sessions, most recently updated first."""
    args = validate(ListSessionsInput, limit=limit, offset=offset, tags=tags)
    sessions, total = await list_sessions(
        db, limit=args.limit, offset=args.offset, tags=args.tags
    )
    return {
        "sessions": [_format_session_row(s) for s in sessions],
        "total": total,
        "has_more": args.offset + len(sessions) < total,
        "limit": args.limit,
        "offset": args.offset,
    }


async def memory_get_session(
    db: aiosqlite.Connection,
    session_id: str,
    include_messages: bool = True,
    message_limit: int = 100,
) -> dict:
    """Full session record, optionally with its first messages."""
    args = validate(
        GetSessionInput,
        session_id=session_id,
        include_messages=include_messages,
        message_limit=message_limit,
    )

    session = await get_session(db, args.session_id)
    if session is None:
        raise NotFoundError(args.session_id)

    messages = []
    if args.include_messages:
        messages = await get_session_messages(db, session.id, limit=args.message_limit)

    return {
        "session": session.to_dict(),
        "messages": [m.to_dict() for m in messages],
        "message_count": await count_messages(db, session.id),
    }


async def memory_search(
    db: aiosqlite.Connection,
    query: str,
    top_k: int = 5,
    time_range_days: int = 180,
    tags: list[str] | None = None,
    session_id: str | None = None,
) -> dict:
    """Full-text search over messages with snippets."""
    args = validate(
        SearchInput,
        query=query,
        top_k=top_k,
        time_range_days=time_range_days,
        tags=tags,
        session_id=session_id,
    )
    fts_query = smart_search(args.query)

    started = time.monotonic()
    hits = await search_messages(
        db,
        fts_query,
        top_k=args.top_k,
        time_range_days=args.time_range_days,
        tags=args.tags,
        session_id=args.session_id,
    )
    elapsed_ms = int((time.monotonic() - started) * 1000)

    terms = args.query.strip('"').split()
    return {
        "hits": [
            {
                "message_id": hit.message_id,
                "session_id": hit.session_id,
                "session_title": hit.session_title,
                "snippet": highlight_snippet(hit.content, terms),
                "relevance_score": hit.relevance_score,
                "created_at": hit.created_at,
            }
            for hit in hits
        ],
        "total_hits": len(hits),
        "query_time_ms": elapsed_ms,
        "query": args.query,
        "fts5_query": fts_query,
    }
