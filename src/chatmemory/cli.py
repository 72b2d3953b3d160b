"""CLI entry points: run the MCP server or build blocks and summaries by hand."""

from __future__ import annotations

import asyncio
import json
import sys

from chatmemory.errors import ChatMemoryError
from chatmemory.log import configure_logging
from chatmemory.store.database import get_db
from chatmemory.summary.styles import BRIEF

USAGE = """Usage: chatmemory <command> [args]
Commands:
  serve                                 Run the MCP server on stdio
  inject session <session_id> [style]   Print the injection block for one session
  inject query <text> [style]           Print the injection block for a keyword query
  summarize <session_id> [style]        Print a session summary (cached if available)"""


def main() -> None:
    """Main CLI dispatcher."""
    if len(sys.argv) < 2:
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    command = sys.argv[1]

    if command == "serve":
        from chatmemory.server import main as serve

        serve()
    elif command == "inject":
        _handle_inject()
    elif command == "summarize":
        _handle_summarize()
    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        sys.exit(1)


def _handle_inject() -> None:
    if len(sys.argv) < 4 or sys.argv[2] not in ("session", "query"):
        print("Usage: chatmemory inject <session|query> <value> [style]", file=sys.stderr)
        sys.exit(1)

    mode, value = sys.argv[2], sys.argv[3]
    style = sys.argv[4] if len(sys.argv) >= 5 else BRIEF
    kwargs = {"session_id": value} if mode == "session" else {"query": value}
    _run(_inject(style=style, **kwargs))


def _handle_summarize() -> None:
    if len(sys.argv) < 3:
        print("Usage: chatmemory summarize <session_id> [style]", file=sys.stderr)
        sys.exit(1)

    style = sys.argv[3] if len(sys.argv) >= 4 else BRIEF
    _run(_summarize(sys.argv[2], style))


def _run(coro) -> None:
    configure_logging()
    try:
        asyncio.run(coro)
    except ChatMemoryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


async def _inject(**kwargs) -> None:
    from chatmemory.tools.inject import memory_inject

    db = await get_db()
    try:
        result = await memory_inject(db, **kwargs)
        print(result["injection_block"])
    finally:
        await db.close()


async def _summarize(session_id: str, style: str) -> None:
    from chatmemory.tools.summarize import memory_summarize_session

    db = await get_db()
    try:
        result = await memory_summarize_session(db, session_id, style=style)
        print(json.dumps(result, indent=2, ensure_ascii=False))
    finally:
        await db.close()


if __name__ == "__main__":
    main()
