"""Tests for the conversation summarizer."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from recollect.agents.summarizer import ConversationSummarizer, SummaryDraft, sanitize_title
from recollect.core.parsing import ResponseParseError, decode_model
from recollect.llm.base import LLMError, LLMResponse, ProviderType
from recollect.llm.router import TaskType
from recollect.memory.frontmatter import split_frontmatter
from recollect.memory.store import FileDocumentStore
from recollect.memory.summary import SummaryRecord

TRANSCRIPT = """---
started: 2024-01-01 12:00
---

User: I'm going to Kyoto next week.
Mira: Lovely! What are you planning to see?
"""

DRAFT = {
    "title": "Kyoto trip plans",
    "tags": ["travel", "Kyoto", "travel"],
    "mood": "Positive",
    "key_takeaways": ["Trip next week"],
    "action_items": ["User: book hotel"],
    "main_topics": ["Travel"],
    "summary": "The user is preparing a trip to Kyoto.",
    "user_insights": {"main_statements": ["Going to Kyoto"], "observed_emotions": None},
    "assistant_insights": {"main_responses": ["Asked about plans"], "role_played": "listener"},
    "related_information": [],
}


def reply(content) -> LLMResponse:
    if not isinstance(content, str):
        content = json.dumps(content)
    return LLMResponse(content=content, model="test", provider=ProviderType.CLAUDE)


@pytest.fixture
def store(tmp_path: Path) -> FileDocumentStore:
    return FileDocumentStore(tmp_path)


@pytest.fixture
def llm() -> Mock:
    llm = Mock()
    llm.complete = AsyncMock()
    return llm


@pytest.fixture
def summarizer(llm: Mock, store: FileDocumentStore) -> ConversationSummarizer:
    return ConversationSummarizer(llm, store, persona="Mira")


@pytest.mark.asyncio
async def test_summarize_writes_summary_and_links_transcript(
    summarizer: ConversationSummarizer, llm: Mock, store: FileDocumentStore
):
    await store.write("Transcripts/20240101120000.md", TRANSCRIPT)
    llm.complete.return_value = reply(DRAFT)

    record = await summarizer.summarize("[[20240101120000.md]]")

    assert record is not None
    assert record.reference == "SN-202401011200-Kyoto_trip_plans"
    assert record.topics == ["travel", "Kyoto"]
    assert record.transcript == "20240101120000"
    assert record.participants == ["User", "Mira"]
    assert llm.complete.call_args.kwargs["task"] == TaskType.SUMMARIZATION
    prompt = llm.complete.call_args.args[0][0]["content"]
    assert "I'm going to Kyoto next week." in prompt
    assert "started:" not in prompt

    stored = SummaryRecord.from_markdown(
        record.reference, await store.read(f"Summaries/{record.reference}.md")
    )
    assert stored.title == "Kyoto trip plans"
    assert stored.transcript == "20240101120000"
    assert stored.key_takeaways == ["Trip next week"]
    assert stored.summary_section() == "The user is preparing a trip to Kyoto."
    assert "## Mira's Responses and Role" in stored.body

    header, body = split_frontmatter(await store.read("Transcripts/20240101120000.md"))
    assert header["summary_note"] == "[[SN-202401011200-Kyoto_trip_plans]]"
    assert header["title"] == "Kyoto trip plans"
    assert "started" in header
    assert "I'm going to Kyoto next week." in body


@pytest.mark.asyncio
async def test_existing_summary_is_not_overwritten(
    summarizer: ConversationSummarizer, llm: Mock, store: FileDocumentStore
):
    await store.write("Transcripts/20240101120000.md", TRANSCRIPT)
    await store.write("Summaries/SN-202401011200-Kyoto_trip_plans.md", "hand edited")
    llm.complete.return_value = reply(DRAFT)

    await summarizer.summarize("20240101120000")

    assert await store.read("Summaries/SN-202401011200-Kyoto_trip_plans.md") == "hand edited"


@pytest.mark.asyncio
async def test_missing_transcript(summarizer: ConversationSummarizer, llm: Mock):
    assert await summarizer.summarize("nope") is None
    llm.complete.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "side_effect",
    [LLMError("down"), [reply("not json")], [reply({"title": "  "})]],
)
async def test_unusable_reply_writes_nothing(
    summarizer: ConversationSummarizer, llm: Mock, store: FileDocumentStore, side_effect
):
    await store.write("Transcripts/20240101120000.md", TRANSCRIPT)
    llm.complete.side_effect = side_effect

    assert await summarizer.summarize("20240101120000") is None
    assert await store.list("Summaries") == []
    assert await store.read("Transcripts/20240101120000.md") == TRANSCRIPT


@pytest.mark.asyncio
async def test_summary_write_failure_returns_none(
    summarizer: ConversationSummarizer, llm: Mock, store: FileDocumentStore
):
    await store.write("Transcripts/20240101120000.md", TRANSCRIPT)
    llm.complete.return_value = reply(DRAFT)
    store.create_folder = AsyncMock(side_effect=PermissionError("read-only vault"))

    assert await summarizer.summarize("20240101120000") is None
    assert await store.read("Transcripts/20240101120000.md") == TRANSCRIPT


@pytest.mark.asyncio
async def test_failed_backlink_keeps_summary(
    summarizer: ConversationSummarizer, llm: Mock, store: FileDocumentStore
):
    await store.write("Transcripts/20240101120000.md", TRANSCRIPT)
    llm.complete.return_value = reply(DRAFT)
    real_write = store.write

    async def write(path: str, text: str) -> None:
        if path.startswith("Transcripts/"):
            raise OSError("disk full")
        await real_write(path, text)

    store.write = write

    record = await summarizer.summarize("20240101120000")

    assert record is not None
    assert await store.exists(f"Summaries/{record.reference}.md")
    assert await store.read("Transcripts/20240101120000.md") == TRANSCRIPT


@pytest.mark.asyncio
async def test_without_model(store: FileDocumentStore):
    await store.write("Transcripts/t.md", "User: hi")
    summarizer = ConversationSummarizer(None, store)
    assert await summarizer.summarize("t") is None


def test_sanitize_title():
    assert sanitize_title("What's next? A/B plan") == "What's_next_AB_plan"
    assert len(sanitize_title("word " * 30)) == 50


def test_draft_requires_title():
    with pytest.raises(ResponseParseError):
        decode_model('{"tags": ["a"]}', SummaryDraft)
    draft = decode_model('{"title": "T", "tags": "solo", "mood": null}', SummaryDraft)
    assert draft.tags == ["solo"]
    assert draft.mood == ""
