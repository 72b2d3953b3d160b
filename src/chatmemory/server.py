"""FastMCP server entry point: registers all ChatMemory tools."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable

import aiosqlite
from mcp.server.fastmcp import FastMCP

from chatmemory import config
from chatmemory.errors import ChatMemoryError
from chatmemory.log import configure_logging
from chatmemory.store.database import get_db

logger = logging.getLogger(__name__)

# Global database connection
_db: aiosqlite.Connection | None = None


async def _get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await get_db(config.db_path())
    return _db


async def _respond(tool: str, call: Awaitable[dict]) -> str:
    """Serialize a tool result; ChatMemoryErrors become an error payload."""
    logger.info("Tool call received: %s", tool)
    try:
        result = await call
    except ChatMemoryError as e:
        logger.error("Tool call failed: %s: %s", tool, e)
        return json.dumps({"error": str(e), "tool": tool}, indent=2, ensure_ascii=False)
    return json.dumps(result, indent=2, ensure_ascii=False)


mcp = FastMCP(
    "ChatMemory",
    instructions=(
        "Stores conversation sessions and messages, searches them with full-text "
        "search, and builds memory injection blocks from session summaries."
    ),
)


@mcp.tool()
async def memory_save_session(
    title: str,
    tags: list[str] | None = None,
    meta: dict | None = None,
) -> str:
    """Create a new memory session with optional metadata (tags and custom fields).

    Args:
        title: Session title
        tags: Optional tags for categorization
        meta: Optional metadata (e.g. project, client, phase)
    """
    from chatmemory.tools.memory import memory_save_session as _save

    db = await _get_db()
    return await _respond("memory_save_session", _save(db, title, tags=tags, meta=meta))


@mcp.tool()
async def memory_save_messages(session_id: str, messages: list[dict]) -> str:
    """Save messages to a session. Messages are indexed for full-text search.

    Args:
        session_id: Session ID to save messages to
        messages: List of {"role": "user"|"assistant"|"system", "content": str, "created_at": optional unix seconds}
    """
    from chatmemory.tools.memory import memory_save_messages as _save

    db = await _get_db()
    return await _respond("memory_save_messages", _save(db, session_id, messages))


@mcp.tool()
async def memory_list_sessions(
    limit: int = 20,
    offset: int = 0,
    tags: list[str] | None = None,
) -> str:
    """List recent sessions with pagination and optional tag filtering.

    Args:
        limit: Number of sessions to return (default: 20, max: 100)
        offset: Offset for pagination (default: 0)
        tags: Filter by tags (all must match)
    """
    from chatmemory.tools.memory import memory_list_sessions as _list

    db = await _get_db()
    return await _respond(
        "memory_list_sessions", _list(db, limit=limit, offset=offset, tags=tags)
    )


@mcp.tool()
async def memory_get_session(
    session_id: str,
    include_messages: bool = True,
    message_limit: int = 100,
) -> str:
    """Get session details with optional messages.

    Args:
        session_id: Session ID
        include_messages: Include messages in the response (default: True)
        message_limit: Maximum messages to return (default: 100, max: 500)
    """
    from chatmemory.tools.memory import memory_get_session as _get

    db = await _get_db()
    return await _respond(
        "memory_get_session",
        _get(db, session_id, include_messages=include_messages, message_limit=message_limit),
    )


@mcp.tool()
async def memory_search(
    query: str,
    top_k: int = 5,
    time_range_days: int = 180,
    tags: list[str] | None = None,
    session_id: str | None = None,
) -> str:
    """Search messages across sessions using FTS5 full-text search.

    Quoted queries search for the exact phrase; AND/OR/NOT/NEAR are passed through.

    Args:
        query: Search query
        top_k: Number of results (default: 5, max: 50)
        time_range_days: Only search messages from the last N days (default: 180)
        tags: Only search sessions carrying all of these tags (optional)
        session_id: Only search this session (optional)
    """
    from chatmemory.tools.memory import memory_search as _search

    db = await _get_db()
    return await _respond(
        "memory_search",
        _search(
            db,
            query,
            top_k=top_k,
            time_range_days=time_range_days,
            tags=tags,
            session_id=session_id,
        ),
    )


@mcp.tool()
async def memory_summarize_session(
    session_id: str,
    style: str = "brief",
    force_refresh: bool = False,
) -> str:
    """Generate (or return the cached) structured summary of a session.

    Args:
        session_id: Session ID
        style: "brief" or "detailed" (default: brief)
        force_refresh: Regenerate even if a cached summary exists (default: False)
    """
    from chatmemory.tools.summarize import memory_summarize_session as _summarize

    db = await _get_db()
    return await _respond(
        "memory_summarize_session",
        _summarize(db, session_id, style=style, force_refresh=force_refresh),
    )


@mcp.tool()
async def memory_inject(
    session_id: str | None = None,
    query: str | None = None,
    style: str = "brief",
    top_k: int = 5,
) -> str:
    """Build a [MEMORY INJECTION] block to paste into a new conversation.

    Give exactly one of session_id (one session) or query (aggregate the
    sessions behind the top search hits from the last 180 days).

    Args:
        session_id: Session to inject (optional)
        query: Keyword query to aggregate across sessions (optional)
        style: "brief" or "detailed" (default: brief)
        top_k: Number of search hits to draw sessions from (default: 5, max: 10)
    """
    from chatmemory.tools.inject import memory_inject as _inject

    db = await _get_db()
    return await _respond(
        "memory_inject",
        _inject(db, session_id=session_id, query=query, style=style, top_k=top_k),
    )


def main() -> None:
    """Run the MCP server."""
    configure_logging()
    if not config.api_key_configured():
        logger.warning("ANTHROPIC_API_KEY not set - summarization will be unavailable")
    logger.info("Starting ChatMemory MCP server (db: %s)", config.db_path())
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
