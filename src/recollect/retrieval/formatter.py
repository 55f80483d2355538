"""Context formatter - renders retrieved items into bounded prompt text."""

from recollect.core.types import NO_MEMORY_SENTINEL, ChatTurn, RetrievedContextItem

EVAL_SNIPPET_LIMIT = 500
FINAL_SNIPPET_LIMIT = 700
FINAL_SNIPPET_MARKER = "... (details omitted)"
ELISION_MARKER = "... (remaining memory omitted)..."
UNKNOWN_DATE = "Unknown date"


def by_relevance(items: list[RetrievedContextItem]) -> list[RetrievedContextItem]:
    """Most relevant first; items without a score rank as 0, ties keep order."""
    return sorted(items, key=lambda item: item.relevance or 0.0, reverse=True)


class ContextFormatter:
    """Renders context for the evaluator and for final answer generation."""

    def __init__(
        self,
        max_context_length: int = 3500,
        max_context_length_for_evaluation: int = 3500,
        history_turns: int = 4,
    ):
        self.max_context_length = max_context_length
        self.max_context_length_for_evaluation = max_context_length_for_evaluation
        self.history_turns = history_turns

    @staticmethod
    def _render_item(item: RetrievedContextItem, snippet: str) -> str:
        text = f"\n[Source: {item.tier.value} - {item.source} ({item.date or UNKNOWN_DATE})]\n"
        if item.title:
            text += f"Title: {item.title}\n"
        return text + f"Excerpt:\n{snippet}\n---\n"

    def format_for_evaluation(
        self,
        items: list[RetrievedContextItem],
        query: str,
        history: list[ChatTurn] | None = None,
    ) -> str:
        """Recent history, the question and gathered items, cut to the evaluation budget."""
        history = history or []
        if not items and not history:
            return "No memory or conversation history is available yet."

        text = "Recent conversation:\n"
        recent = history[-self.history_turns:] if self.history_turns > 0 else []
        if not recent:
            text += "(none)\n"
        for turn in recent:
            text += f"{turn.speaker}: {turn.content}\n"

        text += f"\nCurrent user question: {query}\n\n"

        if not items:
            text += "Gathered information: (none)\n"
        else:
            text += "Gathered information:\n"
            for item in by_relevance(items):
                snippet = item.snippet
                if len(snippet) > EVAL_SNIPPET_LIMIT:
                    snippet = snippet[:EVAL_SNIPPET_LIMIT] + "..."
                text += self._render_item(item, snippet)

        return text[: self.max_context_length_for_evaluation]

    def format_final(self, items: list[RetrievedContextItem]) -> str:
        """Context block injected into the answering prompt."""
        if not items:
            return NO_MEMORY_SENTINEL

        text = ""
        for item in by_relevance(items):
            snippet = item.snippet
            if len(snippet) > FINAL_SNIPPET_LIMIT:
                snippet = snippet[:FINAL_SNIPPET_LIMIT] + FINAL_SNIPPET_MARKER
            text += self._render_item(item, snippet)

        if len(text) > self.max_context_length:
            text = text[: self.max_context_length] + ELISION_MARKER
        return text
