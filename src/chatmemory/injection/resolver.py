"""Resolve an injection request to the sessions it draws from."""

from __future__ import annotations

import logging

import aiosqlite

from chatmemory.errors import InvalidRequestError, NoResultsError, NotFoundError
from chatmemory.store.fts import smart_search
from chatmemory.store.messages import search_messages
from chatmemory.store.sessions import Session, get_session

log = logging.getLogger(__name__)

QUERY_LOOKBACK_DAYS = 180
DEFAULT_TOP_K = 5


async def resolve_sessions(
    db: aiosqlite.Connection,
    session_id: str | None = None,
    query: str | None = None,
    top_k: int = DEFAULT_TOP_K,
    logger: logging.Logger | None = None,
) -> tuple[list[Session], str]:
    """Return the ordered sessions to aggregate and the block's topic line.

    Exactly one of ``session_id`` (single session, topic is its title) or
    ``query`` (sessions owning the top search hits, in hit order) is required.
    """
    logger = logger or log
    query = query.strip() if query else query

    if bool(session_id) == bool(query):
        raise InvalidRequestError("Exactly one of session_id or query must be provided")

    if session_id:
        session = await get_session(db, session_id)
        if session is None:
            raise NotFoundError(session_id)
        return [session], session.title

    hits = await search_messages(
        db,
        smart_search(query),
        top_k=top_k,
        time_range_days=QUERY_LOOKBACK_DAYS,
    )
    if not hits:
        raise NoResultsError(query)

    session_ids = list(dict.fromkeys(hit.session_id for hit in hits))

    sessions: list[Session] = []
    for sid in session_ids:
        session = await get_session(db, sid)
        if session is None:
            logger.debug("Search hit references missing session %s, dropping", sid)
            continue
        sessions.append(session)

    return sessions, f"{query} (across {len(sessions)} sessions)"
