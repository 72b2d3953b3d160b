"""Render aggregated content as the injection block text.

Downstream consumers parse this block, so the marker lines, labels and
section order below must stay byte-stable::

    [MEMORY INJECTION]
    Topic: <topic>

    Facts:
    - <fact>

    Decisions:
    - <decision>

    Constraints & Risks:        (detailed only)
    - <item>

    Open Questions:             (detailed only)
    - <question>

    Next Actions:
    - <action>

    Sources:
    - session_id: <id>          (or sessions_used: [<id>, <id>])
    - updated_at: YYYY-MM-DD

    [/MEMORY INJECTION]
"""

from __future__ import annotations

from chatmemory.injection.aggregator import AggregatedContent
from chatmemory.summary.parser import SECTIONS
from chatmemory.summary.styles import SECTION_CAPS

BLOCK_OPEN = "[MEMORY INJECTION]"
BLOCK_CLOSE = "[/MEMORY INJECTION]"
TOPIC_LABEL = "Topic:"
SOURCES_LABEL = "Sources:"
NONE_LINE = "- (none)"

SECTION_LABELS = {
    "facts": "Facts:",
    "decisions": "Decisions:",
    "constraints_risks": "Constraints & Risks:",
    "open_questions": "Open Questions:",
    "next_actions": "Next Actions:",
}


def _sources_lines(content: AggregatedContent) -> list[str]:
    ids = content.sources.session_ids
    lines = []
    if len(ids) == 1:
        lines.append(f"- session_id: {ids[0]}")
    elif len(ids) > 1:
        lines.append(f"- sessions_used: [{', '.join(ids)}]")
    lines.append(f"- updated_at: {content.sources.updated_at}")
    return lines


def format_injection_block(content: AggregatedContent, style: str) -> str:
    caps = SECTION_CAPS[style]
    # Titles and queries may contain newlines; the topic must stay on one line.
    topic = " ".join(content.topic.split())
    lines = [BLOCK_OPEN, f"{TOPIC_LABEL} {topic}", ""]

    for name in SECTIONS:
        if name not in caps:
            continue
        lines.append(SECTION_LABELS[name])
        items = content.section(name)[: caps[name]]
        lines.extend(f"- {item}" for item in items)
        if not items:
            lines.append(NONE_LINE)
        lines.append("")

    lines.append(SOURCES_LABEL)
    lines.extend(_sources_lines(content))
    lines.append("")
    lines.append(BLOCK_CLOSE)

    return "\n".join(lines)
