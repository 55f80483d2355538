"""Topic profile structure and management.

A profile is a Markdown document with a YAML header. The header holds the
structured fields and the two history logs (prior contexts and user
opinions); the body sections are rendered from them. Profiles written
without the logs are recovered from the rendered body.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from recollect.core.logging import get_logger
from recollect.memory.frontmatter import (
    clean_reference,
    compose_frontmatter,
    display_date,
    extract_section,
    format_timestamp,
    link,
    sanitize_topic_name,
    split_frontmatter,
)

logger = get_logger("memory.profile")

PROFILE_TYPE = "topic_profile"

OVERVIEW = "Overview"
PRIOR_CONTEXTS = "Prior Contexts"
USER_OPINIONS = "User Opinions"
OTHER_NOTES = "Other Notes"
SECTIONS = (OVERVIEW, PRIOR_CONTEXTS, USER_OPINIONS, OTHER_NOTES)

# "- **2024/01/01 [[ref]]**: text" or "- **[[ref]]**: text"
_ENTRY_LINE = re.compile(r"^- \*\*(?:[^\[]*?\s)?(\[\[.+?\]\])\*\*: (.*)$")
# Older hand-written form: "- [[ref]]: text"
_SIMPLE_ENTRY_LINE = re.compile(r"^- (\S*\[\[.*?\]\]\S*): (.*)$")


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


@dataclass
class HistoryEntry:
    """One (summary reference, text) pair in a profile history list."""

    reference: str
    text: str

    def __post_init__(self) -> None:
        self.reference = clean_reference(self.reference)
        # Entries render one per line
        self.text = " ".join(self.text.split())

    def to_dict(self) -> dict[str, str]:
        return {"reference": self.reference, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        return cls(reference=str(data.get("reference", "")), text=str(data.get("text", "")))


def render_history(entries: list[HistoryEntry], dated: bool = False) -> str:
    """Render history entries as Markdown list lines."""
    lines = []
    for entry in entries:
        label = link(entry.reference)
        if dated:
            label = f"{display_date(entry.reference)} {label}"
        lines.append(f"- **{label}**: {entry.text}")
    return "\n".join(lines)


def parse_history(section: str) -> list[HistoryEntry]:
    """Recover history entries from rendered list lines.

    Lines that match neither the rendered nor the older simple form are
    skipped, so a damaged section degrades to fewer entries.
    """
    entries = []
    for line in section.splitlines():
        line = line.strip()
        match = _ENTRY_LINE.match(line) or _SIMPLE_ENTRY_LINE.match(line)
        if not match:
            continue
        reference = clean_reference(match.group(1).strip("*"))
        if reference:
            entries.append(HistoryEntry(reference=reference, text=match.group(2).strip()))
    return entries


def _parse_log(value: Any) -> list[HistoryEntry] | None:
    if not isinstance(value, list):
        return None
    entries = []
    for item in value:
        if isinstance(item, dict) and item.get("reference"):
            entries.append(HistoryEntry.from_dict(item))
    return entries


def merge_history(
    existing: list[HistoryEntry],
    incoming: list[HistoryEntry],
    current_reference: str,
) -> list[HistoryEntry]:
    """Prepend new entries, dropping older entries with the same reference.

    Incoming entries for references already in the history are accepted
    only for the current conversation, so a model cannot rewrite older
    entries; everything else in `existing` survives in order.
    """
    current = clean_reference(current_reference)
    known = {e.reference for e in existing}

    fresh: list[HistoryEntry] = []
    seen: set[str] = set()
    for entry in incoming:
        if not entry.reference or not entry.text or entry.reference in seen:
            continue
        if entry.reference in known and entry.reference != current:
            continue
        seen.add(entry.reference)
        fresh.append(entry)

    return fresh + [e for e in existing if e.reference not in seen]


@dataclass
class TopicProfile:
    """Evolving record of what a topic means to the user."""

    name: str
    aliases: list[str] = field(default_factory=list)
    key_themes: list[str] = field(default_factory=list)
    sentiment_overall: str = "Neutral"
    sentiment_details: list[str] = field(default_factory=list)
    significance: str = ""
    related_topics: list[str] = field(default_factory=list)
    overview: str = ""
    notes: str = ""
    contexts: list[HistoryEntry] = field(default_factory=list)
    opinions: list[HistoryEntry] = field(default_factory=list)
    summaries: list[str] = field(default_factory=list)
    last_mentioned_in: str = ""
    mention_frequency: int = 0
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    @property
    def document_name(self) -> str:
        return sanitize_topic_name(self.name)

    @classmethod
    def new(cls, name: str) -> "TopicProfile":
        """Empty profile for a topic seen for the first time."""
        return cls(name=name)

    def to_header(self) -> dict[str, Any]:
        """Serialize structured fields for the YAML header."""
        return {
            "topic": self.name,
            "type": PROFILE_TYPE,
            "created": self.created_at,
            "updated": self.updated_at,
            "aliases": self.aliases,
            "key_themes": self.key_themes,
            "user_sentiment": {
                "overall": self.sentiment_overall,
                "details": self.sentiment_details,
            },
            "significance": self.significance,
            "related_topics": self.related_topics,
            "summaries": [link(s) for s in self.summaries],
            "last_mentioned_in": link(self.last_mentioned_in) if self.last_mentioned_in else "",
            "mention_frequency": self.mention_frequency,
            "contexts": [e.to_dict() for e in self.contexts],
            "opinions": [e.to_dict() for e in self.opinions],
        }

    def render_body(self) -> str:
        """Render the four Markdown sections."""
        sections = {
            OVERVIEW: self.overview.strip(),
            PRIOR_CONTEXTS: render_history(self.contexts, dated=True),
            USER_OPINIONS: render_history(self.opinions),
            OTHER_NOTES: self.notes.strip(),
        }
        parts = [f"# Topic Profile: {self.name}"]
        for title in SECTIONS:
            parts.append(f"## {title}\n\n{sections[title]}".rstrip())
        return "\n\n".join(parts) + "\n"

    def to_markdown(self) -> str:
        return compose_frontmatter(self.to_header(), self.render_body())

    @classmethod
    def from_markdown(cls, text: str, name: str | None = None) -> "TopicProfile":
        """Parse a profile document.

        History lists come from the header logs when present, else from the
        rendered body. A missing or broken header yields a profile built from
        the body alone.
        """
        header, body = split_frontmatter(text)
        header = header or {}
        sentiment = header.get("user_sentiment") or {}
        if not isinstance(sentiment, dict):
            sentiment = {"overall": str(sentiment)}

        contexts = _parse_log(header.get("contexts"))
        if contexts is None:
            contexts = parse_history(extract_section(body, PRIOR_CONTEXTS))
        opinions = _parse_log(header.get("opinions"))
        if opinions is None:
            opinions = parse_history(extract_section(body, USER_OPINIONS))

        try:
            frequency = int(header.get("mention_frequency") or 0)
        except (TypeError, ValueError):
            frequency = 0

        profile = cls(
            name=str(header.get("topic") or name or ""),
            aliases=_str_list(header.get("aliases")),
            key_themes=_str_list(header.get("key_themes")),
            sentiment_overall=str(sentiment.get("overall") or "Neutral"),
            sentiment_details=_str_list(sentiment.get("details")),
            significance=str(header.get("significance") or ""),
            related_topics=_str_list(header.get("related_topics")),
            overview=extract_section(body, OVERVIEW),
            notes=extract_section(body, OTHER_NOTES),
            contexts=contexts,
            opinions=opinions,
            summaries=[clean_reference(s) for s in _str_list(header.get("summaries"))],
            last_mentioned_in=clean_reference(str(header.get("last_mentioned_in") or "")),
            mention_frequency=frequency,
        )
        created = format_timestamp(header.get("created"))
        updated = format_timestamp(header.get("updated"))
        if created:
            profile.created_at = created
        if updated:
            profile.updated_at = updated
        return profile

    def add_summary(self, reference: str) -> None:
        """Record a summary reference at the head, without duplicates."""
        ref = clean_reference(reference)
        self.summaries = [ref] + [s for s in self.summaries if s != ref]

    def touch(self) -> None:
        self.updated_at = _now()

    def to_snippet(self) -> str:
        """Condensed view used as retrieved context."""
        lines = []
        if self.significance:
            lines.append(f"Significance of '{self.name}': {self.significance}")
        if self.key_themes:
            lines.append(f"Key themes: {', '.join(self.key_themes)}")
        if self.sentiment_overall:
            lines.append(f"User sentiment: {self.sentiment_overall}")
        if self.aliases:
            lines.append(f"Aliases: {', '.join(self.aliases)}")

        sections = (
            (OVERVIEW, self.overview.strip()),
            (PRIOR_CONTEXTS, render_history(self.contexts, dated=True)),
            (USER_OPINIONS, render_history(self.opinions)),
            (OTHER_NOTES, self.notes.strip()),
        )
        for title, text in sections:
            if text:
                lines.append(f"\n## {title}\n{text}")
        return "\n".join(lines).strip()
