"""Tests for summary parsing, dedupe, prompt building and the summary cache."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from chatmemory.errors import GenerationError, InvalidRequestError, NoMessagesError, NotFoundError
from chatmemory.store.database import get_db
from chatmemory.store.messages import Message, insert_messages
from chatmemory.store.sessions import create_session, get_session, update_session_summary
from chatmemory.summary.generator import (
    MAX_TRANSCRIPT_MESSAGES,
    SkipReason,
    summarize_session,
    summary_for,
)
from chatmemory.summary.parser import SECTIONS, dedupe, parse_summary
from chatmemory.summary.prompts import format_transcript, summary_instructions

SAMPLE = """Here is the summary.

Facts:
- Service uses FastAPI
• Database is Postgres 16

Decisions:
- Adopt JWT auth
- (none)

Constraints & Risks:
- Must ship before March

Open Questions:
- Which cache backend?

Next Actions:
- Write migration script
-
"""


@pytest.fixture
async def db(tmp_path):
    db_path = tmp_path / "test.db"
    conn = await get_db(db_path)
    yield conn
    await conn.close()


# --- Parser Tests ---


class TestParseSummary:
    def test_all_sections(self):
        parsed = parse_summary(SAMPLE)
        assert parsed.facts == ["Service uses FastAPI", "Database is Postgres 16"]
        assert parsed.decisions == ["Adopt JWT auth"]
        assert parsed.constraints_risks == ["Must ship before March"]
        assert parsed.open_questions == ["Which cache backend?"]
        assert parsed.next_actions == ["Write migration script"]

    def test_chinese_headers(self):
        text = (
            "关键事实 Facts:\n- 使用 TCU 框架\n"
            "关键决策 Decisions:\n- 采用六统一\n"
            "约束/风险 Constraints & Risks:\n- 时间紧\n"
            "未解决问题 Open Questions:\n- 预算?\n"
            "下一步建议 Next Actions:\n- 安排评审\n- (无)\n"
        )
        parsed = parse_summary(text)
        assert parsed.facts == ["使用 TCU 框架"]
        assert parsed.decisions == ["采用六统一"]
        assert parsed.constraints_risks == ["时间紧"]
        assert parsed.open_questions == ["预算?"]
        assert parsed.next_actions == ["安排评审"]

    def test_risks_header_alone(self):
        parsed = parse_summary("Risks:\n- Vendor lock-in")
        assert parsed.constraints_risks == ["Vendor lock-in"]

    def test_bullets_before_any_header_are_dropped(self):
        parsed = parse_summary("- orphan\nFacts:\n- kept")
        assert parsed.facts == ["kept"]

    def test_non_bullet_lines_are_ignored(self):
        parsed = parse_summary("Facts:\nsome prose\n  - indented bullet  \n* star bullet")
        assert parsed.facts == ["indented bullet"]

    def test_none_placeholders(self):
        parsed = parse_summary("Facts:\n- none\n- (none)\n- NONE\n- (无)\n- real")
        assert parsed.facts == ["real"]

    def test_order_is_preserved_and_not_deduped(self):
        parsed = parse_summary("Facts:\n- A\n- B\n- A")
        assert parsed.facts == ["A", "B", "A"]

    def test_markdown_decorated_headers(self):
        text = "## Facts:\n- one\n**Decisions:**\n- two\n### **Next Actions**\n- three"
        parsed = parse_summary(text)
        assert parsed.facts == ["one"]
        assert parsed.decisions == ["two"]
        assert parsed.next_actions == ["three"]

    def test_header_can_reappear(self):
        parsed = parse_summary("Facts:\n- one\nDecisions:\n- d\nFacts:\n- two")
        assert parsed.facts == ["one", "two"]
        assert parsed.decisions == ["d"]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n\n\n",
            "random text with no structure at all",
            "- - - -",
            "Facts:",
            "•",
            "[MEMORY INJECTION]\nTopic: x\n\nFacts:\n- (none)\n\n[/MEMORY INJECTION]",
        ],
    )
    def test_total(self, text):
        parsed = parse_summary(text)
        for name in SECTIONS:
            lines = parsed.section(name)
            assert isinstance(lines, list)
            assert all(isinstance(line, str) and line for line in lines)


# --- Dedupe Tests ---


class TestDedupe:
    def test_case_and_whitespace_insensitive(self):
        assert dedupe(["Use JWT", "  use jwt ", "USE JWT", "Other"]) == ["Use JWT", "Other"]

    def test_keeps_first_spelling_trimmed(self):
        assert dedupe(["  Mixed Case  ", "mixed case"]) == ["Mixed Case"]

    def test_drops_blank_lines(self):
        assert dedupe(["", "   ", "x"]) == ["x"]

    def test_properties(self):
        lines = ["a", "A", "b", " a", "c", "B", "c "]
        out = dedupe(lines)
        assert len(out) <= len(lines)
        keys = [line.strip().lower() for line in out]
        assert len(keys) == len(set(keys))
        assert out == ["a", "b", "c"]

    def test_empty(self):
        assert dedupe([]) == []


# --- Prompt Tests ---


class TestPrompts:
    def test_brief_caps_and_sections(self):
        text = summary_instructions("brief")
        assert "at most 6 items" in text
        assert "at most 3 items" in text
        assert "at most 5 items" in text
        assert "Constraints & Risks" not in text

    def test_detailed_caps_and_sections(self):
        text = summary_instructions("detailed")
        assert "at most 12 items" in text
        assert "at most 10 items" in text
        assert "Constraints & Risks:" in text
        assert "Open Questions:" in text

    def test_instruction_headers_parse(self):
        # The example output in the template must itself be parseable.
        parsed = parse_summary(summary_instructions("detailed"))
        assert parsed.facts == ["<fact 1>", "<fact 2>"]
        assert parsed.next_actions == ["<action 1>"]

    def test_transcript_format(self):
        msgs = [
            Message(id="1", session_id="s", role="user", content="Hi", created_at=1),
            Message(id="2", session_id="s", role="assistant", content="Hello", created_at=2),
            Message(id="3", session_id="s", role="system", content="Note", created_at=3),
        ]
        assert format_transcript(msgs) == "[User]: Hi\n\n[Assistant]: Hello\n\n[System]: Note"


# --- Summary Cache/Generator Tests ---


class TestSummaryFor:
    async def test_cache_hit_skips_generation(self, db):
        created = await create_session(db, "Cached")
        await update_session_summary(db, created.id, "brief", "Facts:\n- cached")
        session = await get_session(db, created.id)
        generate = AsyncMock()

        outcome = await summary_for(db, session, "brief", generate=generate)
        assert outcome.ok
        assert outcome.cached is True
        assert outcome.summary == "Facts:\n- cached"
        generate.assert_not_awaited()

    async def test_cache_is_per_style(self, db):
        created = await create_session(db, "Cached brief only")
        await update_session_summary(db, created.id, "brief", "Facts:\n- cached")
        await insert_messages(db, created.id, [{"role": "user", "content": "hello"}])
        session = await get_session(db, created.id)
        generate = AsyncMock(return_value="Facts:\n- detailed")

        outcome = await summary_for(db, session, "detailed", generate=generate)
        assert outcome.cached is False
        assert outcome.summary == "Facts:\n- detailed"

    async def test_cache_miss_generates_and_writes_back(self, db):
        created = await create_session(db, "Fresh")
        await insert_messages(
            db,
            created.id,
            [
                {"role": "user", "content": "Use Postgres", "created_at": 1000},
                {"role": "assistant", "content": "Agreed", "created_at": 2000},
            ],
        )
        session = await get_session(db, created.id)
        generate = AsyncMock(return_value="Facts:\n- Postgres chosen")

        outcome = await summary_for(db, session, "detailed", generate=generate)
        assert outcome.ok
        assert outcome.cached is False
        assert outcome.summary == "Facts:\n- Postgres chosen"

        transcript, instructions, max_tokens = generate.await_args.args
        assert transcript == "[User]: Use Postgres\n\n[Assistant]: Agreed"
        assert instructions == summary_instructions("detailed")
        assert max_tokens == 2048

        refreshed = await get_session(db, created.id)
        assert refreshed.summary_detailed == "Facts:\n- Postgres chosen"
        assert refreshed.summary_brief is None

    async def test_no_messages_is_a_skip(self, db):
        session = await create_session(db, "Empty")
        generate = AsyncMock()

        outcome = await summary_for(db, session, "brief", generate=generate)
        assert not outcome.ok
        assert outcome.skip_reason is SkipReason.NO_MESSAGES
        generate.assert_not_awaited()

    async def test_generation_failure_is_a_skip(self, db):
        created = await create_session(db, "Broken")
        await insert_messages(db, created.id, [{"role": "user", "content": "hello"}])
        session = await get_session(db, created.id)
        generate = AsyncMock(side_effect=GenerationError("rate limited"))

        outcome = await summary_for(db, session, "brief", generate=generate)
        assert not outcome.ok
        assert outcome.skip_reason is SkipReason.GENERATION_FAILED
        assert "rate limited" in outcome.error
        assert (await get_session(db, created.id)).summary_brief is None

    async def test_unexpected_error_is_a_skip(self, db):
        created = await create_session(db, "Malformed")
        await insert_messages(db, created.id, [{"role": "user", "content": "hello"}])
        session = await get_session(db, created.id)
        generate = AsyncMock(side_effect=AttributeError("no text block"))

        outcome = await summary_for(db, session, "brief", generate=generate)
        assert not outcome.ok
        assert outcome.skip_reason is SkipReason.GENERATION_FAILED
        assert outcome.error == "AttributeError: no text block"

    async def test_transcript_capped(self, db):
        created = await create_session(db, "Long")
        await insert_messages(
            db,
            created.id,
            [
                {"role": "user", "content": f"m{i}", "created_at": 1000 + i}
                for i in range(MAX_TRANSCRIPT_MESSAGES + 5)
            ],
        )
        session = await get_session(db, created.id)
        generate = AsyncMock(return_value="Facts:\n- long")

        await summary_for(db, session, "brief", generate=generate)
        transcript = generate.await_args.args[0]
        assert transcript.count("[User]:") == MAX_TRANSCRIPT_MESSAGES
        assert transcript.startswith("[User]: m0\n\n")

    @patch("chatmemory.summary.generator.generate_text")
    async def test_defaults_to_llm_client(self, mock_generate, db):
        mock_generate.return_value = "Facts:\n- from client"
        created = await create_session(db, "Default")
        await insert_messages(db, created.id, [{"role": "user", "content": "hello"}])
        session = await get_session(db, created.id)

        outcome = await summary_for(db, session, "brief")
        assert outcome.summary == "Facts:\n- from client"
        mock_generate.assert_awaited_once()


class TestSummarizeSession:
    async def test_returns_cache(self, db):
        created = await create_session(db, "Cached")
        await update_session_summary(db, created.id, "brief", "Facts:\n- cached")

        result = await summarize_session(db, created.id, "brief", generate=AsyncMock())
        assert result["cached"] is True
        assert result["summary"] == "Facts:\n- cached"
        assert result["generated_at"] == created.updated_at

    async def test_force_refresh_regenerates(self, db):
        created = await create_session(db, "Stale")
        await update_session_summary(db, created.id, "brief", "Facts:\n- stale")
        await insert_messages(db, created.id, [{"role": "user", "content": "new info"}])
        generate = AsyncMock(return_value="Facts:\n- fresh")

        result = await summarize_session(db, created.id, "brief", force_refresh=True, generate=generate)
        assert result["cached"] is False
        assert result["summary"] == "Facts:\n- fresh"
        assert (await get_session(db, created.id)).summary_brief == "Facts:\n- fresh"

    async def test_missing_session(self, db):
        with pytest.raises(NotFoundError):
            await summarize_session(db, "missing", "brief", generate=AsyncMock())

    async def test_no_messages_raises(self, db):
        created = await create_session(db, "Empty")
        with pytest.raises(NoMessagesError):
            await summarize_session(db, created.id, "brief", generate=AsyncMock())

    async def test_generation_error_propagates(self, db):
        created = await create_session(db, "Broken")
        await insert_messages(db, created.id, [{"role": "user", "content": "hello"}])
        generate = AsyncMock(side_effect=GenerationError("down"))

        with pytest.raises(GenerationError):
            await summarize_session(db, created.id, "detailed", generate=generate)

    async def test_invalid_style(self, db):
        created = await create_session(db, "Any")
        with pytest.raises(InvalidRequestError):
            await summarize_session(db, created.id, "verbose", generate=AsyncMock())
