"""Sufficiency evaluator - decides whether recalled context is enough.

Runs at most two rounds. After the profile round the model may ask for
conversation summaries; after the summary round it may ask for one
transcript, and the loop ends there regardless.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, field_validator

from recollect.agents.base import AgentConfig, BaseAgent, LLMProvider
from recollect.core.logging import get_logger
from recollect.core.parsing import ResponseParseError, decode_model
from recollect.core.types import ChatTurn, RetrievedContextItem
from recollect.llm.base import LLMError
from recollect.llm.router import TaskType

if TYPE_CHECKING:
    from recollect.retrieval.fetcher import TieredContextFetcher
    from recollect.retrieval.formatter import ContextFormatter

logger = get_logger("agents.evaluator")

MAX_ROUNDS = 2

EVALUATION_PROMPT = """You support the memory and reasoning of "{persona}".
The user's current question is: "{query}"
The following reference information has been gathered so far:
---
{context}
---
Decide whether this information is sufficient to answer the user's current question well.
Always answer in this JSON format:
```json
{{
  "sufficient_for_response": <true or false>,
  "reasoning": "<short reason>",
  "next_summary_notes_to_fetch": ["<if not sufficient: names of conversation summaries to read next, e.g. 'SN-202401011200-Topic'; otherwise []>"],
  "requires_full_log_for_summary_note": "<if not sufficient and a summary's full transcript is needed: that summary's name; otherwise null>"
}}
```
Considerations:
- The current evaluation level is "{level}".
- {level_hint}
- Understand the intent of the question and request only what is really needed.
- "next_summary_notes_to_fetch" and "requires_full_log_for_summary_note" only matter when "sufficient_for_response" is false.
- "requires_full_log_for_summary_note" is for when a summary has already been read and its transcript is needed.
Return only the JSON object, no other text."""

LEVEL_HINTS = {
    "Profile": (
        "Topic profiles alone often lack concrete conversation details. "
        "If related conversation summaries exist, ask for them."
    ),
    "Summary": (
        "Summaries give the outline. Ask for a full transcript only when exact "
        "wording or a specific exchange must be checked."
    ),
}


class EvalState(Enum):
    INIT = "init"
    PROFILE_EVAL = "profile_eval"
    SUMMARY_EVAL = "summary_eval"
    DONE = "done"


class ContextEvaluation(BaseModel):
    """Evaluator verdict as returned by the model."""

    sufficient_for_response: bool = False
    reasoning: str = ""
    next_summary_notes_to_fetch: list[str] = []
    requires_full_log_for_summary_note: str | None = None

    @field_validator("next_summary_notes_to_fetch", mode="before")
    @classmethod
    def coerce_fetch_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("requires_full_log_for_summary_note", mode="before")
    @classmethod
    def blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none"):
            return None
        return value


@dataclass
class EvaluationOutcome:
    """What the evaluation loop gathered and why it stopped."""

    items: list[RetrievedContextItem] = field(default_factory=list)
    rounds: int = 0
    sufficient: bool = False
    summary_requests: list[str] = field(default_factory=list)
    transcript_request: str | None = None
    raw_response: str | None = None


class SufficiencyEvaluator(BaseAgent):
    """Bounded loop asking the model for more context until it is satisfied."""

    def __init__(
        self,
        llm: LLMProvider | None,
        fetcher: "TieredContextFetcher",
        formatter: "ContextFormatter",
        persona: str = "Assistant",
        timeout_seconds: float = 8.0,
        model: str | None = None,
    ):
        config = AgentConfig(
            name="sufficiency_evaluator",
            model=model,
            timeout_seconds=timeout_seconds,
            max_tokens=1024,
            temperature=0.2,
        )
        super().__init__(config, llm)
        self.fetcher = fetcher
        self.formatter = formatter
        self.persona = persona
        self.eval_state = EvalState.INIT

    def build_prompt(self, context: str, query: str, level: str) -> str:
        return EVALUATION_PROMPT.format(
            persona=self.persona,
            query=query,
            context=context,
            level=level,
            level_hint=LEVEL_HINTS[level],
        )

    async def _judge(
        self,
        items: list[RetrievedContextItem],
        query: str,
        history: list[ChatTurn],
        level: str,
    ) -> tuple[ContextEvaluation | None, str | None]:
        context = self.formatter.format_for_evaluation(items, query, history)
        try:
            reply = await self._ask(
                self.build_prompt(context, query, level), task=TaskType.CONTEXT_EVALUATION
            )
        except LLMError as e:
            logger.warning(f"Context evaluation call failed: {e}")
            return None, None
        except Exception as e:
            logger.error(f"Unexpected error during context evaluation: {e}")
            return None, None
        try:
            return decode_model(reply, ContextEvaluation), reply
        except ResponseParseError as e:
            logger.warning(f"Context evaluation reply unparsable: {e}")
            return None, reply

    async def evaluate(
        self,
        query: str,
        history: list[ChatTurn],
        items: list[RetrievedContextItem],
    ) -> EvaluationOutcome:
        """Run the evaluation loop over tier-1 items.

        Never raises for model trouble: a failed, late or unparsable reply
        ends the loop and keeps whatever was gathered.
        """
        outcome = EvaluationOutcome(items=list(items))
        self.eval_state = EvalState.INIT

        for round_no in range(MAX_ROUNDS):
            if round_no == 0 and not outcome.items:
                logger.debug("No profile items, skipping evaluation")
                break

            self.eval_state = EvalState.PROFILE_EVAL if round_no == 0 else EvalState.SUMMARY_EVAL
            level = "Profile" if round_no == 0 else "Summary"
            verdict, reply = await self._judge(outcome.items, query, history, level)
            if reply is not None:
                outcome.raw_response = reply
                outcome.rounds += 1
            if verdict is None:
                break

            if verdict.sufficient_for_response:
                logger.info(f"Context judged sufficient after round {round_no + 1}")
                outcome.sufficient = True
                break

            new_items: list[RetrievedContextItem] = []
            if round_no == 0 and verdict.next_summary_notes_to_fetch:
                outcome.summary_requests = verdict.next_summary_notes_to_fetch
                logger.info(f"Evaluator requested summaries: {outcome.summary_requests}")
                new_items = await self.fetcher.fetch_summaries(outcome.summary_requests)
            elif round_no == 1 and verdict.requires_full_log_for_summary_note:
                outcome.transcript_request = verdict.requires_full_log_for_summary_note
                logger.info(f"Evaluator requested transcript for: {outcome.transcript_request}")
                item = await self.fetcher.fetch_transcript(outcome.transcript_request)
                if item:
                    new_items = [item]

            if not new_items:
                logger.info("Context still insufficient and nothing new to fetch, stopping")
                break
            outcome.items.extend(new_items)

        self.eval_state = EvalState.DONE
        return outcome
