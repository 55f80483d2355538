"""Conversation summary records."""

from dataclasses import dataclass, field
from typing import Any

from recollect.memory.frontmatter import (
    clean_reference,
    compose_frontmatter,
    extract_section,
    format_timestamp,
    link,
    split_frontmatter,
)

SUMMARY_TYPE = "conversation_summary"
SUMMARY_SECTION = "Summary"


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


@dataclass
class SummaryRecord:
    """One concluded conversation, condensed.

    `reference` is the document name without folder or extension and is
    what profiles and the evaluator use to point at the record.
    """

    reference: str
    title: str = ""
    date: str | None = None
    participants: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)
    transcript: str | None = None
    mood: str = "Neutral"
    key_takeaways: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)
    body: str = ""

    def to_header(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date,
            "type": SUMMARY_TYPE,
            "participants": self.participants,
            "tags": self.topics,
            "full_log": link(self.transcript) if self.transcript else None,
            "mood": self.mood,
            "key_takeaways": self.key_takeaways,
            "action_items": self.action_items,
        }

    def to_markdown(self) -> str:
        return compose_frontmatter(self.to_header(), self.body)

    @classmethod
    def from_markdown(cls, reference: str, text: str) -> "SummaryRecord":
        header, body = split_frontmatter(text)
        header = header or {}
        transcript = header.get("full_log")
        return cls(
            reference=clean_reference(reference),
            title=str(header.get("title") or ""),
            date=format_timestamp(header.get("date")),
            participants=_str_list(header.get("participants")),
            topics=_str_list(header.get("tags")),
            transcript=clean_reference(str(transcript)) if transcript else None,
            mood=str(header.get("mood") or "Neutral"),
            key_takeaways=_str_list(header.get("key_takeaways")),
            action_items=_str_list(header.get("action_items")),
            body=body.strip(),
        )

    def summary_section(self) -> str:
        """The "Summary" section, or else the first prose paragraph of the body."""
        section = extract_section(self.body, SUMMARY_SECTION)
        if section:
            return section
        for paragraph in self.body.split("\n\n"):
            paragraph = paragraph.strip()
            if paragraph and not paragraph.startswith("#"):
                return paragraph
        return ""
