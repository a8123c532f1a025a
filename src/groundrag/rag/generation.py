"""Grounded answer generation on top of a packed context."""

import json
import logging
import re
from typing import AsyncIterator, Iterable, Sequence

from groundrag.providers.base import LLMProvider

from .document import RankedContext

logger = logging.getLogger(__name__)

SOURCES_MARKER = "\n\n__SOURCES__:"

INTRODUCTORY_PATTERN = re.compile(
    r"^(how can you help|what can you help with|what can you do|how can i help|"
    r"what do you do|tell me about yourself)",
    re.IGNORECASE,
)

DEFAULT_SYSTEM_INSTRUCTIONS = (
    "You are a document assistant. Answer questions using only the document "
    "sections provided. Cite the document name and section title for every "
    "claim and quote the relevant text. Answer in markdown."
)

DEFAULT_INTRODUCTION = (
    "I can help you find and understand information in your uploaded documents: "
    "locating relevant clauses and sections, explaining terms, and checking "
    "requirements against what the documents say."
)

NO_CONTEXT_INSTRUCTIONS = (
    "No document sections matched this question. If it is an introductory "
    "question, introduce yourself as follows: {introduction} Otherwise say that "
    "the information is not available in the uploaded documents."
)

DRAFT_INSTRUCTIONS = (
    "The user asked for a written communication. Write the complete message, "
    "ready to send: a subject line, a greeting, a body that cites the relevant "
    "sections with quotes, a closing and a signature placeholder."
)

DRAFT_HISTORY_INSTRUCTIONS = (
    "Earlier questions in this conversation describe the situation the message "
    "is about. Carry their specifics into the message: the component or node "
    "involved, its licensing status, the subscription and the environment.\n\n"
    "{questions}"
)


def is_introductory(query: str) -> bool:
    return bool(INTRODUCTORY_PATTERN.match(query.strip()))


def format_sources(context: RankedContext) -> str:
    """Sources trailer listing exactly the passages that fed the prompt."""
    return SOURCES_MARKER + json.dumps(context.sources())


class AnswerGenerator:
    """Builds the grounded prompt and streams the model's answer.

    An empty context is not an error: the prompt switches to an explicit
    "no grounding context" branch instead of asking the model to answer
    from passages that do not exist.
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: str = "gpt-3.5-turbo",
        system_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS,
        introduction: str = DEFAULT_INTRODUCTION,
        temperature: float = 0.0,
        max_tokens: int = 512,
        draft_max_tokens: int = 1500,
    ):
        self.provider = provider
        self.model = model
        self.system_instructions = system_instructions
        self.introduction = introduction
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.draft_max_tokens = draft_max_tokens

    def max_tokens_for(self, intents: Iterable[str]) -> int:
        return self.draft_max_tokens if "draft_communication" in set(intents) else self.max_tokens

    def build_messages(
        self,
        query: str,
        context: RankedContext,
        intents: Iterable[str] = (),
        history: Sequence[tuple[str, str]] = (),
    ) -> list[dict[str, str]]:
        """Chat messages for one turn.

        Args:
            query: Current question
            context: Packed grounding context
            intents: Intent tags of the question
            history: Earlier ``(question, answer)`` turns, oldest first
        """
        intents = set(intents)
        parts = []

        if context.is_empty or is_introductory(query):
            parts.append(NO_CONTEXT_INSTRUCTIONS.format(introduction=self.introduction))
        if not context.is_empty:
            parts.append(
                "Document sections, most relevant first:\n\n" + context.context_text.rstrip()
            )

        parts.append(f'Question: """\n{query.strip()}\n"""')

        if "draft_communication" in intents:
            parts.append(DRAFT_INSTRUCTIONS)
            if history:
                questions = "\n".join(
                    f"Previous question {i}: {question}"
                    for i, (question, _) in enumerate(history, start=1)
                )
                parts.append(DRAFT_HISTORY_INSTRUCTIONS.format(questions=questions))

        messages = [{"role": "system", "content": self.system_instructions}]
        for question, answer in history:
            messages.append({"role": "user", "content": question})
            messages.append({"role": "assistant", "content": answer})
        messages.append({"role": "user", "content": "\n\n".join(parts)})
        return messages

    async def stream(
        self,
        query: str,
        context: RankedContext,
        intents: Iterable[str] = (),
        history: Sequence[tuple[str, str]] = (),
    ) -> AsyncIterator[str]:
        """Stream answer chunks for a query and its packed context."""
        intents = set(intents)
        messages = self.build_messages(query, context, intents, history)

        async for chunk in self.provider.stream(
            messages,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens_for(intents),
        ):
            yield chunk

    async def stream_with_sources(
        self,
        query: str,
        context: RankedContext,
        intents: Iterable[str] = (),
        history: Sequence[tuple[str, str]] = (),
    ) -> AsyncIterator[str]:
        """Stream the answer followed by the sources trailer."""
        async for chunk in self.stream(query, context, intents, history):
            yield chunk

        logger.debug(f"Answer complete; appending {len(context.used_passages)} sources")
        yield format_sources(context)
