"""Logging setup. stdout carries MCP JSON-RPC, so records only ever go to stderr."""

from __future__ import annotations

import logging
import sys

from chatmemory import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool | None = None) -> None:
    if debug is None:
        debug = config.debug_enabled()
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
    # The anthropic/httpx clients are chatty at DEBUG.
    logging.getLogger("httpx").setLevel(logging.WARNING)
