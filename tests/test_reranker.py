"""Tests for document-name boosting and candidate merging."""

import pytest

from groundrag.rag import DocumentNameBooster, Ranker, SimilarityCandidate
from groundrag.utils import get_profile

from helpers import make_passage


def candidate(id, similarity, document_name="Product Guide", source="vector"):
    return SimilarityCandidate(
        passage=make_passage(id, document_name=document_name),
        similarity=similarity,
        source=source,
    )


def legal_booster() -> DocumentNameBooster:
    return Ranker.from_profile(get_profile("legal")).booster


class TestDocumentNameBooster:
    """Tests for document-name boosting."""

    def test_named_document_wins_tie(self):
        """A query naming the BSL lifts the BSL passage over an equal rival."""
        booster = legal_booster()
        candidates = [
            candidate("sub", 0.80, "Subscription Agreement"),
            candidate("bsl", 0.80, "Business Source License"),
        ]

        boosted = booster.boost(candidates, "What does the BSL say about production use?")

        assert [c.passage_id for c in boosted] == ["bsl", "sub"]
        assert boosted[0].similarity == 1.0
        assert boosted[1].similarity == 0.80

    def test_boost_tiers(self):
        booster = legal_booster()

        assert booster.boost_factor("business source") == 1.25
        assert booster.boost_factor("maxscale") == 1.20
        assert booster.boost_factor("terms") == 1.15
        assert booster.boost_factor("bsl") == 1.15

    def test_first_matching_alias_decides_factor(self):
        booster = legal_booster()

        boosted = booster.boost([candidate("p", 0.60, "BSL 1.1")], "Is the bsl strict?")

        assert boosted[0].similarity == pytest.approx(0.60 * 1.15)

    def test_boost_is_clamped(self):
        booster = legal_booster()

        boosted = booster.boost(
            [candidate("p", 0.95, "MaxScale Terms")],
            "Does maxscale need a license?",
        )

        assert boosted[0].similarity == 1.0

    def test_boosts_do_not_stack(self):
        """A document matching several mentioned types is boosted once."""
        booster = legal_booster()

        boosted = booster.boost(
            [candidate("p", 0.50, "Business Source License Subscription Agreement")],
            "Compare the BSL and the subscription agreement",
        )

        assert boosted[0].similarity == pytest.approx(0.50 * 1.25)

    def test_alias_needs_word_boundary(self):
        booster = legal_booster()

        assert booster.aliases_for("Is the bslx module covered?") == []
        assert booster.aliases_for("What about BSL?") == ["bsl", "business source", "business source license"]

    def test_no_alias_returns_candidates_unchanged(self):
        booster = legal_booster()
        candidates = [candidate("a", 0.7), candidate("b", 0.9)]

        assert booster.boost(candidates, "How do backups work?") == candidates

    def test_original_candidates_untouched(self):
        booster = legal_booster()
        original = candidate("bsl", 0.80, "Business Source License")

        booster.boost([original], "bsl terms")

        assert original.similarity == 0.80


class TestRanker:
    """Tests for merging vector and keyword candidates."""

    def test_vector_only_sorted(self):
        ranker = Ranker(max_results=10)

        merged = ranker.merge([candidate("a", 0.8), candidate("b", 0.9)], [], "query")

        assert [c.passage_id for c in merged] == ["b", "a"]

    def test_keyword_candidates_come_first(self):
        """Keyword rescues precede vector results, in discovery order."""
        ranker = Ranker(max_results=10)
        vector = [candidate("v1", 0.95), candidate("v2", 0.90)]
        keyword = [
            candidate("k2", 0.85, source="keyword"),
            candidate("k1", 0.85, source="keyword"),
        ]

        merged = ranker.merge(vector, keyword, "query")

        assert [c.passage_id for c in merged] == ["k2", "k1", "v1", "v2"]

    def test_no_duplicate_passages(self):
        """A passage found by both searches appears once, with its vector score."""
        ranker = Ranker(max_results=10)
        vector = [candidate("shared", 0.92), candidate("v", 0.80)]
        keyword = [
            candidate("shared", 0.85, source="keyword"),
            candidate("k", 0.85, source="keyword"),
            candidate("k", 0.85, source="keyword"),
        ]

        merged = ranker.merge(vector, keyword, "query")
        ids = [c.passage_id for c in merged]

        assert ids == ["shared", "k", "v"]
        assert len(ids) == len(set(ids))
        assert merged[0].similarity == 0.92
        assert merged[0].source == "vector"

    def test_truncates_to_limit(self):
        ranker = Ranker(max_results=2, overflow_allowance=1)
        vector = [candidate(f"v{i}", 0.9 - i * 0.01) for i in range(4)]
        keyword = [candidate("k", 0.85, source="keyword")]

        merged = ranker.merge(vector, keyword, "query")

        assert ranker.limit == 3
        assert [c.passage_id for c in merged] == ["k", "v0", "v1"]

    def test_boost_applies_before_merge(self):
        ranker = Ranker.from_profile(get_profile("legal"))
        vector = [
            candidate("guide", 0.85, "Product Guide"),
            candidate("privacy", 0.80, "Privacy Policy"),
        ]

        merged = ranker.merge(vector, [], "What does the privacy policy say?")

        assert [c.passage_id for c in merged] == ["privacy", "guide"]

    def test_profile_without_aliases_has_no_booster(self):
        ranker = Ranker.from_profile(get_profile("product"))

        assert ranker.booster is None
        assert ranker.limit == 15
