"""Summary styles and their per-section line caps."""

from __future__ import annotations

from chatmemory.errors import InvalidRequestError

BRIEF = "brief"
DETAILED = "detailed"
STYLES = (BRIEF, DETAILED)

# Sections absent from a style's caps are not rendered for that style.
SECTION_CAPS: dict[str, dict[str, int]] = {
    BRIEF: {
        "facts": 6,
        "decisions": 3,
        "next_actions": 5,
    },
    DETAILED: {
        "facts": 12,
        "decisions": 6,
        "constraints_risks": 6,
        "open_questions": 6,
        "next_actions": 10,
    },
}

MAX_OUTPUT_TOKENS = {BRIEF: 1024, DETAILED: 2048}


def validate_style(style: str) -> str:
    if style not in STYLES:
        raise InvalidRequestError(
            f"Invalid style: {style!r} (expected one of {', '.join(STYLES)})"
        )
    return style
