"""Tests for the tiered context fetcher."""

from pathlib import Path

import pytest

from recollect.core.types import RankedTopic, SourceTier
from recollect.memory.profile import HistoryEntry, TopicProfile
from recollect.memory.store import FileDocumentStore
from recollect.memory.summary import SummaryRecord
from recollect.retrieval.fetcher import (
    PROFILE_TRUNCATED,
    TieredContextFetcher,
    cap,
    normalize_references,
)


@pytest.fixture
def store(tmp_path: Path) -> FileDocumentStore:
    return FileDocumentStore(tmp_path)


@pytest.fixture
def fetcher(store: FileDocumentStore) -> TieredContextFetcher:
    return TieredContextFetcher(store, max_context_length=3500, max_topics=5)


async def write_profile(store: FileDocumentStore, profile: TopicProfile) -> None:
    await store.write(f"TopicProfiles/{profile.document_name}.md", profile.to_markdown())


async def write_summary(store: FileDocumentStore, record: SummaryRecord) -> None:
    await store.write(f"Summaries/{record.reference}.md", record.to_markdown())


def test_cap():
    assert cap("short", 10, "!") == "short"
    assert cap("abcdef", 3, "...") == "abc..."


def test_normalize_references():
    refs = ["[[SN-1.md]]", "SN-1", " SN-2.md ", "", "[[]]", "SN-3"]
    assert normalize_references(refs) == ["SN-1", "SN-2", "SN-3"]


def test_profile_snippet_limit():
    assert TieredContextFetcher(None, max_context_length=3500, max_topics=5).profile_snippet_limit == 500
    # Small budgets still leave a readable snippet
    assert TieredContextFetcher(None, max_context_length=600, max_topics=5).profile_snippet_limit == 100


@pytest.mark.asyncio
async def test_fetch_profiles(store: FileDocumentStore, fetcher: TieredContextFetcher):
    profile = TopicProfile.new("python")
    profile.significance = "Main language"
    profile.contexts = [HistoryEntry("SN-202401011200-A", "Asked about asyncio")]
    await write_profile(store, profile)

    items = await fetcher.fetch_profiles(
        [RankedTopic(name="python", score=80.0, keyword="python"),
         RankedTopic(name="missing", score=70.0, keyword="missing")]
    )

    assert len(items) == 1
    item = items[0]
    assert item.tier == SourceTier.PROFILE
    assert item.source == "python"
    assert item.title == "Topic profile: python"
    assert item.relevance == 80.0
    assert item.date == profile.updated_at
    assert "Significance of 'python': Main language" in item.snippet
    assert "Asked about asyncio" in item.snippet


@pytest.mark.asyncio
async def test_fetch_profiles_truncates(store: FileDocumentStore, fetcher: TieredContextFetcher):
    profile = TopicProfile.new("long")
    profile.overview = "x" * 5000
    await write_profile(store, profile)

    items = await fetcher.fetch_profiles([RankedTopic(name="long", score=1.0, keyword="long")])

    limit = fetcher.profile_snippet_limit
    assert items[0].snippet.endswith(PROFILE_TRUNCATED)
    assert len(items[0].snippet) == limit + len(PROFILE_TRUNCATED)


@pytest.mark.asyncio
async def test_fetch_profiles_respects_max_topics(store: FileDocumentStore):
    fetcher = TieredContextFetcher(store, max_topics=2)
    ranked = []
    for name in ("a", "b", "c"):
        await write_profile(store, TopicProfile.new(name))
        ranked.append(RankedTopic(name=name, score=1.0, keyword=name))

    items = await fetcher.fetch_profiles(ranked)
    assert [i.source for i in items] == ["a", "b"]


@pytest.mark.asyncio
async def test_fetch_profiles_sanitizes_names(store: FileDocumentStore, fetcher: TieredContextFetcher):
    await write_profile(store, TopicProfile.new("C/C++"))
    items = await fetcher.fetch_profiles([RankedTopic(name="C/C++", score=1.0, keyword="C/C++")])
    assert items[0].source == "C_C++"


@pytest.mark.asyncio
async def test_fetch_summaries(store: FileDocumentStore, fetcher: TieredContextFetcher):
    await write_summary(
        store,
        SummaryRecord(
            reference="SN-202401011200-Trip",
            title="Trip",
            date="2024-01-01 12:00",
            key_takeaways=["Going to Kyoto", "Needs a rail pass"],
            body="## Summary\n" + "y" * 600,
        ),
    )

    items = await fetcher.fetch_summaries(
        ["[[SN-202401011200-Trip.md]]", "SN-202401011200-Trip", "SN-missing"]
    )

    assert len(items) == 1
    item = items[0]
    assert item.tier == SourceTier.SUMMARY
    assert item.source == "SN-202401011200-Trip"
    assert item.title == "Trip"
    assert item.date == "2024-01-01 12:00"
    assert item.snippet.startswith("y" * 500 + "...\n")
    assert item.snippet.endswith("Key takeaways: Going to Kyoto; Needs a rail pass")


@pytest.mark.asyncio
async def test_fetch_summaries_empty(fetcher: TieredContextFetcher):
    assert await fetcher.fetch_summaries([]) == []


@pytest.mark.asyncio
async def test_fetch_transcript(store: FileDocumentStore, fetcher: TieredContextFetcher):
    await write_summary(
        store,
        SummaryRecord(reference="SN-1", title="Chat", transcript="20240101120000"),
    )
    await store.write(
        "Transcripts/20240101120000.md",
        "---\ntitle: Chat\n---\n\n" + "User: hi\n" * 200,
    )

    item = await fetcher.fetch_transcript("[[SN-1]]")

    assert item is not None
    assert item.tier == SourceTier.FULL_TRANSCRIPT
    assert item.source == "20240101120000"
    assert item.snippet.startswith("Transcript excerpt:\nUser: hi")
    assert item.snippet.endswith("...")
    assert len(item.snippet) <= len("Transcript excerpt:\n") + 800 + 3
    assert "title:" not in item.snippet


@pytest.mark.asyncio
async def test_fetch_transcript_without_link(store: FileDocumentStore, fetcher: TieredContextFetcher):
    await write_summary(store, SummaryRecord(reference="SN-1", title="Chat"))
    assert await fetcher.fetch_transcript("SN-1") is None


@pytest.mark.asyncio
async def test_fetch_transcript_missing_documents(store: FileDocumentStore, fetcher: TieredContextFetcher):
    assert await fetcher.fetch_transcript("SN-none") is None
    assert await fetcher.fetch_transcript("") is None

    await write_summary(store, SummaryRecord(reference="SN-2", transcript="gone"))
    assert await fetcher.fetch_transcript("SN-2") is None
