"""Tests for grounded answer generation."""

import json

import pytest

from groundrag.rag import AnswerGenerator, ContextPacker, RankedContext, SimilarityCandidate, WhitespaceTokenizer
from groundrag.rag.generation import SOURCES_MARKER, format_sources, is_introductory

from helpers import FakeProvider, make_passage


def packed_context() -> RankedContext:
    candidates = [
        SimilarityCandidate(
            passage=make_passage("p1", document_name="BSL", section_title="Grant"),
            similarity=0.91,
        ),
        SimilarityCandidate(
            passage=make_passage("p2", document_name="Terms", section_title="Fees", content="word " * 500),
            similarity=0.85,
            source="keyword",
        ),
    ]
    return ContextPacker(WhitespaceTokenizer(), token_budget=100).pack(candidates)


class TestAnswerGenerator:
    """Tests for prompt building and streaming."""

    def test_messages_with_context(self):
        generator = AnswerGenerator(FakeProvider())
        context = packed_context()

        system, user = generator.build_messages("Can I use it in production?", context)

        assert system["role"] == "system"
        assert user["role"] == "user"
        assert "[DOCUMENT: BSL]" in user["content"]
        assert '"""\nCan I use it in production?\n"""' in user["content"]
        assert "No document sections matched" not in user["content"]

    def test_messages_without_context(self):
        """An empty context switches the prompt to the no-context branch."""
        generator = AnswerGenerator(FakeProvider())

        _, user = generator.build_messages("Can I use it in production?", RankedContext())

        assert "No document sections matched" in user["content"]
        assert "Document sections, most relevant first" not in user["content"]

    def test_introductory_question(self):
        generator = AnswerGenerator(FakeProvider(), introduction="I read contracts.")

        _, user = generator.build_messages("How can you help me?", packed_context())

        assert is_introductory("  what can you do?")
        assert "I read contracts." in user["content"]

    def test_draft_communication(self):
        generator = AnswerGenerator(FakeProvider())

        _, user = generator.build_messages("Draft an email", RankedContext(), {"draft_communication"})

        assert "subject line" in user["content"]
        assert generator.max_tokens_for({"draft_communication"}) == 1500
        assert generator.max_tokens_for({"licensing"}) == 512

    @pytest.mark.asyncio
    async def test_stream_with_sources(self):
        """The answer is followed by a trailer naming only the passages used."""
        provider = FakeProvider()
        generator = AnswerGenerator(provider, model="gpt-4")
        context = packed_context()

        chunks = [c async for c in generator.stream_with_sources("Question?", context, {"draft_communication"})]

        assert chunks[:2] == ["Hello", " world"]
        assert chunks[-1].startswith(SOURCES_MARKER)
        sources = json.loads(chunks[-1][len(SOURCES_MARKER):])
        assert sources == [{"id": "p1", "document_name": "BSL", "section_title": "Grant", "similarity": 0.91}]
        assert provider.requests[0]["model"] == "gpt-4"
        assert provider.requests[0]["max_tokens"] == 1500

    def test_format_sources_empty(self):
        assert format_sources(RankedContext()) == SOURCES_MARKER + "[]"


class TestConversationHistory:
    """Tests for carrying earlier turns into the prompt."""

    HISTORY = [
        ("I found an arbitrator node that is not under license.", "That node must be licensed."),
        ("The client has an Enterprise subscription for 3 nodes in production.", "Then notify them."),
    ]

    def test_history_sent_as_prior_turns(self):
        generator = AnswerGenerator(FakeProvider())

        messages = generator.build_messages("What should I do?", packed_context(), history=self.HISTORY)

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user", "assistant", "user"]
        assert messages[1]["content"] == self.HISTORY[0][0]
        assert messages[4]["content"] == "Then notify them."
        assert '"""\nWhat should I do?\n"""' in messages[-1]["content"]
        assert "Previous question" not in messages[-1]["content"]

    def test_draft_lists_earlier_questions(self):
        """A drafted message is told to reuse the facts from earlier questions."""
        generator = AnswerGenerator(FakeProvider())

        messages = generator.build_messages(
            "Write an email to the customer", RankedContext(), {"draft_communication"}, self.HISTORY
        )

        content = messages[-1]["content"]
        assert "Previous question 1: I found an arbitrator node that is not under license." in content
        assert "Previous question 2: The client has an Enterprise subscription" in content

    @pytest.mark.asyncio
    async def test_stream_passes_history(self):
        provider = FakeProvider()
        generator = AnswerGenerator(provider)

        chunks = [
            c async for c in generator.stream_with_sources(
                "Draft the email", RankedContext(), {"draft_communication"}, history=self.HISTORY
            )
        ]

        assert chunks[-1] == SOURCES_MARKER + "[]"
        assert len(provider.requests[0]["messages"]) == 6
        assert provider.requests[0]["max_tokens"] == 1500
