"""Instruction templates sent with a transcript to the summary model."""

from __future__ import annotations

from chatmemory.store.messages import Message
from chatmemory.summary.styles import BRIEF, SECTION_CAPS

ROLE_LABELS = {
    "user": "User",
    "assistant": "Assistant",
    "system": "System",
}

_RULES = """Rules:
- Keep each item concise (at most 100 characters)
- Do not include instructions or requests (e.g. "please...", "help me...")
- Keep only facts and conclusions
- Do not retell the conversation"""

BRIEF_TEMPLATE = """You are a professional conversation summarizer. Analyze the conversation below and extract the key information.

Extract:
1. Facts: objective statements, at most {facts} items
2. Decisions: decisions that were made, at most {decisions} items
3. Next Actions: follow-ups and recommendations, at most {next_actions} items

{rules}

Output format:
Facts:
- <fact 1>
- <fact 2>

Decisions:
- <decision 1>

Next Actions:
- <action 1>"""

DETAILED_TEMPLATE = """You are a professional conversation summarizer. Analyze the conversation below and extract the key information.

Extract:
1. Facts: objective statements, at most {facts} items
2. Decisions: decisions that were made, at most {decisions} items
3. Constraints & Risks: limitations and potential problems, at most {constraints_risks} items
4. Open Questions: questions still to be settled, at most {open_questions} items
5. Next Actions: follow-ups and recommendations, at most {next_actions} items

{rules}

Output format:
Facts:
- <fact 1>
- <fact 2>

Decisions:
- <decision 1>

Constraints & Risks:
- <constraint 1>

Open Questions:
- <question 1>

Next Actions:
- <action 1>"""


def summary_instructions(style: str) -> str:
    template = BRIEF_TEMPLATE if style == BRIEF else DETAILED_TEMPLATE
    return template.format(rules=_RULES, **SECTION_CAPS[style])


def format_transcript(messages: list[Message]) -> str:
    """Render messages as ``[Role]: content`` blocks in chronological order."""
    return "\n\n".join(
        f"[{ROLE_LABELS.get(msg.role, msg.role)}]: {msg.content}" for msg in messages
    )
