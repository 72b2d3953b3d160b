"""Merge per-session summaries into one deduplicated content record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import aiosqlite

from chatmemory.store.sessions import Session
from chatmemory.summary.generator import GenerateFn, SummaryOutcome, summary_for
from chatmemory.summary.parser import SECTIONS, StructuredSummary, dedupe, parse_summary

log = logging.getLogger(__name__)


@dataclass
class Sources:
    session_ids: list[str] = field(default_factory=list)
    updated_at: str = ""


@dataclass
class AggregatedContent(StructuredSummary):
    topic: str = ""
    sources: Sources = field(default_factory=Sources)


def merge_summaries(summaries: list[StructuredSummary]) -> StructuredSummary:
    """Concatenate same-named sections in order, then dedupe each section."""
    merged = StructuredSummary()
    for name in SECTIONS:
        lines = [line for summary in summaries for line in summary.section(name)]
        setattr(merged, name, dedupe(lines))
    return merged


async def aggregate(
    db: aiosqlite.Connection,
    sessions: list[Session],
    topic: str,
    style: str,
    generate: GenerateFn | None = None,
    logger: logging.Logger | None = None,
    today: date | None = None,
) -> AggregatedContent:
    """Summarize each session in turn and merge the results.

    Sessions whose summary could not be obtained contribute nothing, but
    still appear in ``sources``.
    """
    logger = logger or log

    outcomes: list[SummaryOutcome] = []
    for session in sessions:
        outcomes.append(await summary_for(db, session, style, generate=generate, logger=logger))

    parsed = [parse_summary(o.summary) for o in outcomes if o.ok]
    skipped = [o.session_id for o in outcomes if not o.ok]
    if skipped:
        logger.info("%d of %d sessions contributed no summary: %s", len(skipped), len(outcomes), skipped)

    merged = merge_summaries(parsed)
    today = today or datetime.now(timezone.utc).date()

    return AggregatedContent(
        topic=topic,
        facts=merged.facts,
        decisions=merged.decisions,
        constraints_risks=merged.constraints_risks,
        open_questions=merged.open_questions,
        next_actions=merged.next_actions,
        sources=Sources(
            session_ids=[s.id for s in sessions],
            updated_at=today.isoformat(),
        ),
    )
