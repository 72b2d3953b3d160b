"""Opening the memory database: WAL, foreign keys, versioned schema migrations."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from chatmemory import config

logger = logging.getLogger(__name__)

# Each version is applied once, in order, and recorded in schema_version.
MIGRATIONS: dict[int, list[str]] = {
    1: [
        """
        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            tags TEXT,
            meta TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER,
            summary_brief TEXT,
            summary_detailed TEXT
        )
        """,
        # Messages are immutable once written
        """
        CREATE TABLE IF NOT EXISTS messages (
            id TEXT PRIMARY KEY,
            session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
            role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
            content TEXT NOT NULL,
            created_at INTEGER NOT NULL
        )
        """,
        # External-content index keyed on the implicit rowid, since ids are uuids
        """
        CREATE VIRTUAL TABLE IF NOT EXISTS messages_fts USING fts5(
            content,
            content='messages',
            content_rowid='rowid',
            tokenize='porter unicode61'
        )
        """,
        """
        CREATE TRIGGER IF NOT EXISTS messages_ai AFTER INSERT ON messages BEGIN
            INSERT INTO messages_fts(rowid, content) VALUES (new.rowid, new.content);
        END
        """,
        """
        CREATE TRIGGER IF NOT EXISTS messages_ad AFTER DELETE ON messages BEGIN
            INSERT INTO messages_fts(messages_fts, rowid, content)
            VALUES ('delete', old.rowid, old.content);
        END
        """,
        "CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id, created_at)",
        "CREATE INDEX IF NOT EXISTS idx_sessions_updated ON sessions(updated_at)",
    ],
}

LATEST_VERSION = max(MIGRATIONS)


async def get_db(db_path: str | Path | None = None) -> aiosqlite.Connection:
    """Connect (creating the file and its directory if needed) and migrate."""
    path = Path(db_path) if db_path else config.db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(str(path))
    db.row_factory = aiosqlite.Row

    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.execute("PRAGMA synchronous=NORMAL")

    await _run_migrations(db)
    logger.debug("Database ready at %s", path)
    return db


async def schema_version(db: aiosqlite.Connection) -> int:
    """Highest applied migration, 0 for a fresh file."""
    await db.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
    cursor = await db.execute("SELECT COALESCE(MAX(version), 0) FROM schema_version")
    (version,) = await cursor.fetchone()
    return version


async def _run_migrations(db: aiosqlite.Connection) -> None:
    current = await schema_version(db)
    pending = [v for v in sorted(MIGRATIONS) if v > current]

    for version in pending:
        for sql in MIGRATIONS[version]:
            await db.execute(sql)
        await db.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        await db.commit()
        logger.info("Applied schema migration %d", version)
