"""Parse free-text summaries into sections, and dedupe merged section lines."""

from __future__ import annotations

from dataclasses import dataclass, field

SECTIONS = (
    "facts",
    "decisions",
    "constraints_risks",
    "open_questions",
    "next_actions",
)

# Checked in order; the first matching prefix wins.
HEADER_PREFIXES: list[tuple[str, tuple[str, ...]]] = [
    ("facts", ("Facts", "关键事实")),
    ("decisions", ("Decisions", "关键决策")),
    ("constraints_risks", ("Constraints", "Risks", "约束", "风险")),
    ("open_questions", ("Open Questions", "未解决")),
    ("next_actions", ("Next Actions", "下一步")),
]

HEADER_DECORATION = "#* "
BULLETS = ("-", "•")
NONE_PLACEHOLDERS = {"none", "(none)", "无", "(无)"}


@dataclass
class StructuredSummary:
    facts: list[str] = field(default_factory=list)
    decisions: list[str] = field(default_factory=list)
    constraints_risks: list[str] = field(default_factory=list)
    open_questions: list[str] = field(default_factory=list)
    next_actions: list[str] = field(default_factory=list)

    def section(self, name: str) -> list[str]:
        return getattr(self, name)


def _header_section(line: str) -> str | None:
    # Markdown decoration such as "## Facts:" or "**Facts:**"
    label = line.lstrip(HEADER_DECORATION)
    for section, prefixes in HEADER_PREFIXES:
        if label.startswith(prefixes):
            return section
    return None


def parse_summary(text: str) -> StructuredSummary:
    """Split a summary into its five sections.

    Never raises: text without recognisable headers or bullets simply yields
    empty sections.
    """
    result = StructuredSummary()
    current: str | None = None

    for raw in text.splitlines():
        line = raw.strip()

        header = _header_section(line)
        if header is not None:
            current = header
            continue

        if current is None or not line.startswith(BULLETS):
            continue

        item = line[1:].strip()
        if item and item.lower() not in NONE_PLACEHOLDERS:
            result.section(current).append(item)

    return result


def dedupe(lines: list[str]) -> list[str]:
    """Drop repeats by trimmed, case-insensitive key; keep the first spelling."""
    seen: set[str] = set()
    unique: list[str] = []
    for line in lines:
        key = line.strip().lower()
        if key and key not in seen:
            seen.add(key)
            unique.append(line.strip())
    return unique
