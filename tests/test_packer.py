"""Tests for context packing."""

from groundrag.rag import ContextPacker, SimilarityCandidate, WhitespaceTokenizer
from groundrag.utils import get_profile

from helpers import make_passage


def words(n: int, prefix: str = "word") -> str:
    return " ".join(f"{prefix}{i}" for i in range(n))


def candidate(id, content, similarity=0.9, **kwargs):
    return SimilarityCandidate(passage=make_passage(id, content=content, **kwargs), similarity=similarity)


class TestContextPacker:
    """Tests for the greedy token packer."""

    def test_format_block(self):
        packer = ContextPacker(WhitespaceTokenizer())
        block = packer.format_block(
            candidate("p", "  Clause text.  ", similarity=0.876, document_name="BSL", section_title="Use")
        )

        assert block == "[DOCUMENT: BSL] (Relevance: 88%)\nSECTION: Use\n\nClause text."

    def test_format_block_fallback_names(self):
        packer = ContextPacker(WhitespaceTokenizer())
        block = packer.format_block(candidate("p", "Text", document_name="", section_title=None))

        assert block.startswith("[DOCUMENT: Document]")
        assert "SECTION: Section" in block

    def test_product_profile_format(self):
        packer = ContextPacker.from_profile(WhitespaceTokenizer(), get_profile("product"))

        context = packer.pack([candidate("p", "Replication is built in.", document_name="MaxScale")])

        assert context.context_text == (
            "Product: MaxScale\nSection: Overview\nReplication is built in.\n---\n"
        )
        assert packer.token_budget == 1500

    def test_every_block_followed_by_delimiter(self):
        packer = ContextPacker(WhitespaceTokenizer(), token_budget=100)

        context = packer.pack([candidate("a", "alpha beta"), candidate("b", "gamma delta")])

        assert context.context_text.count("\n\n---\n\n") == 2
        assert context.context_text.endswith("\n\n---\n\n")
        assert context.context_text.index("alpha") < context.context_text.index("gamma")

    def test_budget_cuts_long_list(self):
        """Twenty ten-word passages into a budget of ~200/3 keeps a prefix of six."""
        packer = ContextPacker(WhitespaceTokenizer(), token_budget=66)
        candidates = [candidate(f"p{i}", words(10, prefix=f"p{i}w")) for i in range(20)]

        context = packer.pack(candidates)

        assert len(context.used_passages) == 6
        assert context.used_passages == candidates[:6]
        assert context.token_count == 60
        assert "p5w0" in context.context_text
        assert "p6w0" not in context.context_text

    def test_stays_under_budget(self):
        """The packed token count is always below the budget."""
        tokenizer = WhitespaceTokenizer()
        packer = ContextPacker(tokenizer)
        candidates = [candidate(f"p{i}", words(1 + (i * 7) % 13)) for i in range(15)]

        for budget in range(1, 120):
            context = packer.pack(candidates, token_budget=budget)
            counted = sum(tokenizer.count(c.passage.content) for c in context.used_passages)

            assert counted == context.token_count
            assert context.token_count < budget

    def test_used_passages_are_prefix(self):
        packer = ContextPacker(WhitespaceTokenizer())
        candidates = [candidate(f"p{i}", words(3 + i)) for i in range(10)]

        for budget in (1, 5, 20, 50, 500):
            context = packer.pack(candidates, token_budget=budget)
            assert context.used_passages == candidates[: len(context.used_passages)]

    def test_stops_at_first_passage_over_budget(self):
        """Packing stops at the first misfit; later small passages are not slotted in."""
        packer = ContextPacker(WhitespaceTokenizer(), token_budget=10)

        context = packer.pack([candidate("big", words(20)), candidate("small", words(2))])

        assert context.is_empty
        assert context.context_text == ""

    def test_reaching_budget_exactly_excludes_passage(self):
        packer = ContextPacker(WhitespaceTokenizer(), token_budget=10)

        context = packer.pack([candidate("a", words(4)), candidate("b", words(6))])

        assert [c.passage_id for c in context.used_passages] == ["a"]

    def test_empty_input(self):
        packer = ContextPacker(WhitespaceTokenizer())

        context = packer.pack([])

        assert context.is_empty
        assert context.context_text == ""
        assert context.token_count == 0
        assert context.sources() == []

    def test_sources(self):
        packer = ContextPacker(WhitespaceTokenizer())

        context = packer.pack([
            candidate("a", "alpha", similarity=0.8765, document_name="BSL", section_title="Use"),
        ])

        assert context.sources() == [
            {"id": "a", "document_name": "BSL", "section_title": "Use", "similarity": 0.88}
        ]
