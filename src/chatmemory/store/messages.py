"""Append-only message storage with FTS5 search across sessions."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass

import aiosqlite

from chatmemory.errors import InvalidRequestError
from chatmemory.store.fts import basic_search
from chatmemory.store.sessions import now_ts, touch_session

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 180


@dataclass
class Message:
    id: str
    session_id: str
    role: str
    content: str
    created_at: int

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> Message:
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            role=row["role"],
            content=row["content"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at,
        }


@dataclass
class SearchHit:
    message_id: str
    session_id: str
    session_title: str
    content: str
    relevance_score: float  # FTS5 rank, lower is better
    created_at: int

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> SearchHit:
        return cls(
            message_id=row["message_id"],
            session_id=row["session_id"],
            session_title=row["session_title"],
            content=row["content"],
            relevance_score=row["relevance_score"],
            created_at=row["created_at"],
        )


async def insert_messages(
    db: aiosqlite.Connection,
    session_id: str,
    messages: list[dict],
) -> list[Message]:
    """Append messages to a session in one transaction and bump its updated_at.

    Each item needs ``role`` and ``content``; ``created_at`` defaults to now.
    """
    saved: list[Message] = []
    try:
        for item in messages:
            msg = Message(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role=item["role"],
                content=item["content"],
                created_at=item.get("created_at") or now_ts(),
            )
            await db.execute(
                """
                INSERT INTO messages (id, session_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (msg.id, msg.session_id, msg.role, msg.content, msg.created_at),
            )
            saved.append(msg)

        if saved:
            await touch_session(db, session_id, commit=False)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.debug("Saved %d messages to session %s", len(saved), session_id)
    return saved


async def get_session_messages(
    db: aiosqlite.Connection,
    session_id: str,
    limit: int = 100,
    offset: int = 0,
) -> list[Message]:
    """Get messages for a session, oldest first."""
    cursor = await db.execute(
        """
        SELECT * FROM messages
        WHERE session_id = ?
        ORDER BY created_at ASC, rowid ASC
        LIMIT ? OFFSET ?
        """,
        (session_id, limit, offset),
    )
    return [Message.from_row(row) for row in await cursor.fetchall()]


async def count_messages(
    db: aiosqlite.Connection, session_id: str | None = None
) -> int:
    """Count total messages, optionally filtered by session."""
    if session_id:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM messages WHERE session_id = ?", (session_id,)
        )
    else:
        cursor = await db.execute("SELECT COUNT(*) FROM messages")
    row = await cursor.fetchone()
    return row[0]


async def search_messages(
    db: aiosqlite.Connection,
    query: str,
    top_k: int = 5,
    time_range_days: int = DEFAULT_LOOKBACK_DAYS,
    tags: list[str] | None = None,
    session_id: str | None = None,
) -> list[SearchHit]:
    """FTS5 search over message content, best match first.

    ``query`` is an FTS5 MATCH expression (see ``chatmemory.store.fts``). If
    FTS5 rejects its syntax, the search is retried with every term quoted;
    if that is rejected too the query is an InvalidRequestError.
    Only messages newer than ``time_range_days`` are considered.
    """
    threshold = now_ts() - time_range_days * 86400

    sql = """
        SELECT
            m.id AS message_id,
            m.session_id,
            s.title AS session_title,
            m.content,
            messages_fts.rank AS relevance_score,
            m.created_at
        FROM messages_fts
        JOIN messages m ON messages_fts.rowid = m.rowid
        JOIN sessions s ON m.session_id = s.id
        WHERE messages_fts MATCH ?
            AND m.created_at > ?
    """
    params: list = [query, threshold]

    if session_id:
        sql += " AND m.session_id = ?"
        params.append(session_id)

    if tags:
        sql += " AND " + " AND ".join("s.tags LIKE ?" for _ in tags)
        params.extend(f"%{json.dumps(tag, ensure_ascii=False)}%" for tag in tags)

    sql += " ORDER BY relevance_score LIMIT ?"
    params.append(top_k)

    started = time.monotonic()
    try:
        hits = await _fetch_hits(db, sql, params)
    except aiosqlite.OperationalError as e:
        fallback = basic_search(query)
        logger.warning("FTS5 rejected %r (%s), retrying as %r", query, e, fallback)
        params[0] = fallback
        try:
            hits = await _fetch_hits(db, sql, params)
        except aiosqlite.OperationalError as retry_error:
            raise InvalidRequestError(f"Invalid search query: {query!r}") from retry_error

    logger.debug(
        "Search %r returned %d hits in %.1fms",
        query,
        len(hits),
        (time.monotonic() - started) * 1000,
    )
    return hits


async def _fetch_hits(db: aiosqlite.Connection, sql: str, params: list) -> list[SearchHit]:
    cursor = await db.execute(sql, params)
    return [SearchHit.from_row(row) for row in await cursor.fetchall()]
