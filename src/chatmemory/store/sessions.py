"""Session CRUD and the per-style summary cache."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field

import aiosqlite

logger = logging.getLogger(__name__)

# Style name -> cache column
SUMMARY_COLUMNS = {
    "brief": "summary_brief",
    "detailed": "summary_detailed",
}


@dataclass
class Session:
    id: str
    title: str
    created_at: int
    tags: list[str] = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    updated_at: int | None = None
    summary_brief: str | None = None
    summary_detailed: str | None = None

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> Session:
        return cls(
            id=row["id"],
            title=row["title"],
            created_at=row["created_at"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            meta=json.loads(row["meta"]) if row["meta"] else {},
            updated_at=row["updated_at"],
            summary_brief=row["summary_brief"] or None,
            summary_detailed=row["summary_detailed"] or None,
        )

    def cached_summary(self, style: str) -> str | None:
        return getattr(self, SUMMARY_COLUMNS[style])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "tags": self.tags,
            "meta": self.meta,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "summary_brief": self.summary_brief,
            "summary_detailed": self.summary_detailed,
        }


def now_ts() -> int:
    return int(time.time())


async def create_session(
    db: aiosqlite.Connection,
    title: str,
    tags: list[str] | None = None,
    meta: dict | None = None,
) -> Session:
    """Create a session. Returns the stored record."""
    session = Session(
        id=str(uuid.uuid4()),
        title=title,
        created_at=now_ts(),
        tags=list(tags or []),
        meta=dict(meta or {}),
    )
    session.updated_at = session.created_at

    await db.execute(
        """
        INSERT INTO sessions (id, title, tags, meta, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            session.id,
            session.title,
            json.dumps(session.tags, ensure_ascii=False),
            json.dumps(session.meta, ensure_ascii=False),
            session.created_at,
            session.updated_at,
        ),
    )
    await db.commit()
    logger.debug("Session created: %s (%s)", session.id, title)
    return session


async def get_session(db: aiosqlite.Connection, session_id: str) -> Session | None:
    """Get a single session by ID."""
    cursor = await db.execute("SELECT * FROM sessions WHERE id = ?", (session_id,))
    row = await cursor.fetchone()
    return Session.from_row(row) if row else None


def _tag_filter(tags: list[str] | None) -> tuple[str, list[str]]:
    """AND-match tags against the JSON-encoded tag list."""
    if not tags:
        return "", []
    clause = " WHERE " + " AND ".join("tags LIKE ?" for _ in tags)
    params = [f"%{json.dumps(tag, ensure_ascii=False)}%" for tag in tags]
    return clause, params


async def list_sessions(
    db: aiosqlite.Connection,
    limit: int = 20,
    offset: int = 0,
    tags: list[str] | None = None,
) -> tuple[list[Session], int]:
    """List sessions, most recently updated first. Returns (page, total)."""
    where, params = _tag_filter(tags)

    cursor = await db.execute(f"SELECT COUNT(*) FROM sessions{where}", params)
    row = await cursor.fetchone()
    total = row[0]

    cursor = await db.execute(
        f"SELECT * FROM sessions{where} ORDER BY updated_at DESC, rowid DESC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    )
    sessions = [Session.from_row(r) for r in await cursor.fetchall()]
    return sessions, total


async def touch_session(
    db: aiosqlite.Connection, session_id: str, commit: bool = True
) -> None:
    """Bump updated_at, e.g. after messages are appended."""
    await db.execute(
        "UPDATE sessions SET updated_at = ? WHERE id = ?", (now_ts(), session_id)
    )
    if commit:
        await db.commit()


async def update_session_summary(
    db: aiosqlite.Connection,
    session_id: str,
    style: str,
    summary: str,
) -> None:
    """Write a generated summary into the session's cache for that style."""
    column = SUMMARY_COLUMNS[style]
    await db.execute(
        f"UPDATE sessions SET {column} = ? WHERE id = ?", (summary, session_id)
    )
    await db.commit()
    logger.debug("Cached %s summary for session %s", style, session_id)
