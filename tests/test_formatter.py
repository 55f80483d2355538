"""Tests for the context formatter."""

import pytest

from recollect.core.types import NO_MEMORY_SENTINEL, ChatTurn, RetrievedContextItem, SourceTier
from recollect.retrieval.formatter import (
    ELISION_MARKER,
    FINAL_SNIPPET_MARKER,
    ContextFormatter,
    by_relevance,
)


def item(source: str, snippet: str = "text", relevance: float | None = None, **kwargs) -> RetrievedContextItem:
    return RetrievedContextItem(
        tier=kwargs.pop("tier", SourceTier.PROFILE),
        source=source,
        snippet=snippet,
        relevance=relevance,
        **kwargs,
    )


@pytest.fixture
def formatter() -> ContextFormatter:
    return ContextFormatter(max_context_length=3500, max_context_length_for_evaluation=3500)


def test_final_empty_is_no_memory_text(formatter: ContextFormatter):
    assert formatter.format_final([]) == NO_MEMORY_SENTINEL


def test_final_item_layout(formatter: ContextFormatter):
    text = formatter.format_final(
        [item("python", "Likes asyncio", title="Topic profile: python", date="2024-01-01 12:00")]
    )
    assert text == (
        "\n[Source: Profile - python (2024-01-01 12:00)]\n"
        "Title: Topic profile: python\n"
        "Excerpt:\nLikes asyncio\n---\n"
    )


def test_final_unknown_date_and_no_title(formatter: ContextFormatter):
    text = formatter.format_final([item("SN-1", tier=SourceTier.SUMMARY)])
    assert "[Source: Summary - SN-1 (Unknown date)]" in text
    assert "Title:" not in text


def test_final_orders_by_relevance(formatter: ContextFormatter):
    text = formatter.format_final(
        [item("low", relevance=10.0), item("none"), item("high", relevance=90.0)]
    )
    assert text.index("high") < text.index("low") < text.index("none")


def test_by_relevance_is_stable():
    items = [item("a"), item("b", relevance=0.0), item("c")]
    assert [i.source for i in by_relevance(items)] == ["a", "b", "c"]


def test_final_caps_each_snippet(formatter: ContextFormatter):
    text = formatter.format_final([item("big", "z" * 1000)])
    assert "z" * 700 + FINAL_SNIPPET_MARKER in text
    assert "z" * 701 not in text


def test_final_caps_whole_context():
    formatter = ContextFormatter(max_context_length=200)
    text = formatter.format_final([item(f"s{i}", "w" * 300) for i in range(5)])
    assert text.endswith(ELISION_MARKER)
    assert len(text) == 200 + len(ELISION_MARKER)


def test_evaluation_without_anything(formatter: ContextFormatter):
    text = formatter.format_for_evaluation([], "what?", [])
    assert text == "No memory or conversation history is available yet."


def test_evaluation_layout(formatter: ContextFormatter):
    history = [ChatTurn(role="user", content="hi"), ChatTurn(role="assistant", content="hello")]
    text = formatter.format_for_evaluation([item("python", "Likes asyncio")], "Remember?", history)

    assert text.startswith("Recent conversation:\nUser: hi\nAssistant: hello\n")
    assert "Current user question: Remember?" in text
    assert "Gathered information:\n" in text
    assert text.index("Current user question") < text.index("[Source: Profile - python")


def test_evaluation_history_window():
    formatter = ContextFormatter(history_turns=2)
    history = [ChatTurn(role="user", content=f"turn {i}") for i in range(5)]
    text = formatter.format_for_evaluation([], "q", history)

    assert "turn 2" not in text
    assert "turn 3" in text
    assert "turn 4" in text
    assert "Gathered information: (none)" in text


def test_evaluation_caps_snippets(formatter: ContextFormatter):
    text = formatter.format_for_evaluation([item("big", "e" * 900)], "q")
    assert "e" * 500 + "..." in text
    assert "e" * 501 not in text


def test_evaluation_caps_whole_text():
    formatter = ContextFormatter(max_context_length_for_evaluation=300)
    text = formatter.format_for_evaluation([item(f"s{i}", "v" * 400) for i in range(4)], "q")
    assert len(text) == 300
