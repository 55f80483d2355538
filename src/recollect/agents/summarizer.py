"""Conversation summarizer - condenses a concluded transcript into a summary record."""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from recollect.agents.base import AgentConfig, BaseAgent, LLMProvider
from recollect.core.logging import get_logger
from recollect.core.parsing import ResponseParseError, decode_model
from recollect.llm.base import LLMError
from recollect.llm.router import TaskType
from recollect.memory.base import DocumentStore
from recollect.memory.frontmatter import (
    clean_reference,
    compose_frontmatter,
    extract_date_from_reference,
    link,
    split_frontmatter,
)
from recollect.memory.summary import SummaryRecord

logger = get_logger("agents.summarizer")

_UNSAFE_TITLE_CHARS = re.compile(r'[\\/:*?"<>|#^\[\]]')

SUMMARY_PROMPT = """You are summarizing a conversation log from a chat application.
The conversation is between "User" and "{persona}".
The full conversation log:
---
{conversation}
---

1. Determine the primary language of the conversation.
2. Write ALL text in the JSON fields below in that language.
3. Return valid JSON only, with no text around it.

{{
  "title": "A concise, descriptive title (max 10 words)",
  "tags": ["Topic names this conversation is about, short nouns"],
  "mood": "Positive, Negative, Neutral or Mixed",
  "key_takeaways": ["Key conclusion or decision"],
  "action_items": ["User: action for the user", "{persona}: action for {persona}"],
  "main_topics": ["Main topic discussed"],
  "summary": "A concise narrative summary of the main points",
  "user_insights": {{
    "main_statements": ["Quote or paraphrase of a key user statement"],
    "observed_emotions": ["Emotion the user showed and when"]
  }},
  "assistant_insights": {{
    "main_responses": ["What {persona} contributed"],
    "role_played": "The role {persona} played, e.g. listener or problem solver"
  }},
  "related_information": ["Documents, links or topics referred to; [] if none"]
}}"""


def sanitize_title(title: str) -> str:
    """Title fragment usable in a document name."""
    cleaned = _UNSAFE_TITLE_CHARS.sub("", title)
    return re.sub(r"\s+", "_", cleaned.strip())[:50]


def _str_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return value


class UserInsights(BaseModel):
    main_statements: list[str] = []
    observed_emotions: list[str] = []

    @field_validator("main_statements", "observed_emotions", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        return _str_list(value)


class AssistantInsights(BaseModel):
    main_responses: list[str] = []
    role_played: str = ""

    @field_validator("main_responses", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        return _str_list(value)

    @field_validator("role_played", mode="before")
    @classmethod
    def none_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value


class SummaryDraft(BaseModel):
    """Summary fields as returned by the model."""

    title: str
    tags: list[str] = []
    mood: str = "Neutral"
    key_takeaways: list[str] = []
    action_items: list[str] = []
    main_topics: list[str] = []
    summary: str = ""
    user_insights: UserInsights | None = None
    assistant_insights: AssistantInsights | None = None
    related_information: list[str] = []

    @field_validator(
        "tags", "key_takeaways", "action_items", "main_topics", "related_information", mode="before"
    )
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        return _str_list(value)

    @field_validator("mood", "summary", mode="before")
    @classmethod
    def none_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value


class ConversationSummarizer(BaseAgent):
    """Writes a summary record for a transcript and links the transcript to it."""

    def __init__(
        self,
        llm: LLMProvider | None,
        store: DocumentStore,
        summary_dir: str = "Summaries",
        transcript_dir: str = "Transcripts",
        persona: str = "Assistant",
        timeout_seconds: float = 60.0,
        model: str | None = None,
    ):
        config = AgentConfig(
            name="conversation_summarizer",
            model=model,
            timeout_seconds=timeout_seconds,
            max_tokens=2048,
            temperature=0.3,
        )
        super().__init__(config, llm)
        self.store = store
        self.summary_dir = summary_dir
        self.transcript_dir = transcript_dir
        self.persona = persona

    def render_body(self, draft: SummaryDraft, created: str) -> str:
        lines = [
            f"# Conversation Summary: {draft.title}",
            "",
            f"**Date**: {created}",
            f"**Participants**: User, {self.persona}",
            "",
            "## Main Topics",
            *[f"- {topic}" for topic in draft.main_topics],
            "",
            "## Summary",
            draft.summary or "No summary available.",
            "",
            "## User Statements and Emotions",
        ]
        if draft.user_insights:
            lines += [f'- "{s}"' for s in draft.user_insights.main_statements]
            lines += [f"- {e}" for e in draft.user_insights.observed_emotions]
        else:
            lines.append("N/A")
        lines += ["", f"## {self.persona}'s Responses and Role"]
        if draft.assistant_insights:
            lines += [f"- {r}" for r in draft.assistant_insights.main_responses]
            lines.append(f"- Role: {draft.assistant_insights.role_played or 'N/A'}")
        else:
            lines.append("N/A")
        if draft.related_information:
            lines += ["", "## Related Information", *[f"- {i}" for i in draft.related_information]]
        return "\n".join(lines) + "\n"

    async def summarize(self, transcript: str) -> SummaryRecord | None:
        """Summarize one transcript.

        Args:
            transcript: Transcript reference (document name in the transcript folder)

        Returns:
            The written SummaryRecord, or None when the transcript is missing
            or the model reply is unusable
        """
        transcript_ref = clean_reference(transcript)
        transcript_path = f"{self.transcript_dir}/{transcript_ref}.md"
        try:
            text = await self.store.read_optional(transcript_path)
        except Exception as e:
            logger.error(f"Failed to read transcript {transcript_path}: {e}")
            return None
        if text is None:
            logger.warning(f"Transcript not found: {transcript_path}")
            return None

        header, body = split_frontmatter(text)
        conversation = body.strip() or text

        try:
            reply = await self._ask(
                SUMMARY_PROMPT.format(persona=self.persona, conversation=conversation),
                task=TaskType.SUMMARIZATION,
            )
            draft = decode_model(reply, SummaryDraft)
        except (LLMError, ResponseParseError) as e:
            logger.error(f"Summarization of {transcript_ref} failed: {e}")
            return None

        started = extract_date_from_reference(transcript_ref) or datetime.now()
        reference = f"SN-{started.strftime('%Y%m%d%H%M')}-{sanitize_title(draft.title)}"
        created = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        record = SummaryRecord(
            reference=reference,
            title=draft.title,
            date=created,
            participants=["User", self.persona],
            topics=list(dict.fromkeys(t.strip() for t in draft.tags)),
            transcript=transcript_ref,
            mood=draft.mood or "Neutral",
            key_takeaways=draft.key_takeaways,
            action_items=draft.action_items,
            body=self.render_body(draft, created),
        )

        summary_path = f"{self.summary_dir}/{reference}.md"
        try:
            await self.store.create_folder(self.summary_dir)
            if await self.store.exists(summary_path):
                logger.warning(f"Summary already exists, keeping it: {summary_path}")
            else:
                await self.store.write(summary_path, record.to_markdown())
                logger.info(f"Summary written: {summary_path}")
        except Exception as e:
            logger.error(f"Failed to write summary {summary_path}: {e}")
            return None

        # Link the transcript back to its summary
        header = header or {}
        header["title"] = draft.title
        header["summary_note"] = link(reference)
        try:
            await self.store.write(transcript_path, compose_frontmatter(header, body))
        except Exception as e:
            logger.warning(f"Failed to link {transcript_path} to {reference}: {e}")
        return record
