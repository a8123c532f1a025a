"""Tests for intent classification and keyword augmentation."""

import pytest

from groundrag.rag import KeywordAugmenter, MemoryVectorStore, RegexIntentClassifier
from groundrag.utils import IntentRule, get_profile

from helpers import DIMENSION, make_passage

RULES = [
    IntentRule(tag="reporting", pattern=r"notify.*about", keywords=["promptly notify", "notify"]),
    IntentRule(tag="licensing", pattern=r"licen[cs]e", keywords=["licensed", "notify"]),
]

NOTIFY_CLAUSE = "The customer must promptly notify the licensor when usage exceeds the quantity."


class CountingStore(MemoryVectorStore):
    """Memory store that records keyword lookups."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.keyword_calls: list[list[str]] = []

    async def search_keywords(self, keywords, min_content_length, limit=10):
        self.keyword_calls.append(list(keywords))
        return await super().search_keywords(keywords, min_content_length, limit)


class TestRegexIntentClassifier:
    """Tests for the regex intent classifier."""

    def test_classify(self):
        classifier = RegexIntentClassifier(RULES)

        assert classifier.classify("Must they NOTIFY us about it?") == {"reporting"}
        assert classifier.classify("Which License applies?") == {"licensing"}
        assert classifier.classify("What is the weather?") == set()

    def test_keywords_in_rule_order_without_repeats(self):
        classifier = RegexIntentClassifier(RULES)

        keywords = classifier.keywords_for({"licensing", "reporting"})

        assert keywords == ["promptly notify", "notify", "licensed"]

    def test_legal_rules(self):
        """The built-in legal rules recognise reporting and drafting requests."""
        classifier = RegexIntentClassifier(get_profile("legal").intent_rules)

        tags = classifier.classify("Must the customer promptly notify us about over-usage?")
        draft = classifier.classify("Draft an email to the customer about the extra node")

        assert "reporting_obligation" in tags
        assert "draft_communication" in draft
        assert "must promptly notify" in classifier.keywords_for(tags)


class TestKeywordAugmenter:
    """Tests for keyword augmentation."""

    @pytest.mark.asyncio
    async def test_matches_get_synthetic_similarity(self):
        store = CountingStore(dimension=DIMENSION)
        await store.add([
            make_passage("plain"),
            make_passage("clause", similarity=0.1, content=NOTIFY_CLAUSE),
        ])
        augmenter = KeywordAugmenter(store, RegexIntentClassifier(RULES))

        candidates = await augmenter.search("Do I need to notify them about this?", 50)

        assert [c.passage_id for c in candidates] == ["clause"]
        assert candidates[0].similarity == 0.85
        assert candidates[0].source == "keyword"

    @pytest.mark.asyncio
    async def test_no_intent_skips_store(self):
        """A query with no matching intent never touches the store."""
        store = CountingStore(dimension=DIMENSION)
        await store.add([make_passage("clause", content=NOTIFY_CLAUSE)])
        augmenter = KeywordAugmenter(store, RegexIntentClassifier(RULES))

        candidates = await augmenter.search("Tell me a story", 50)

        assert candidates == []
        assert store.keyword_calls == []

    @pytest.mark.asyncio
    async def test_precomputed_tags(self):
        store = CountingStore(dimension=DIMENSION)
        await store.add([make_passage("clause", content=NOTIFY_CLAUSE)])
        augmenter = KeywordAugmenter(store, RegexIntentClassifier(RULES), synthetic_similarity=0.8)

        candidates = await augmenter.search("anything", 50, tags={"reporting"})

        assert [c.similarity for c in candidates] == [0.8]
        assert store.keyword_calls == [["promptly notify", "notify"]]

    @pytest.mark.asyncio
    async def test_respects_max_results(self):
        store = CountingStore(dimension=DIMENSION)
        await store.add([make_passage(f"p{i}", content=NOTIFY_CLAUSE) for i in range(6)])
        augmenter = KeywordAugmenter(store, RegexIntentClassifier(RULES), max_results=2)

        candidates = await augmenter.search("notify us about it", 50)

        assert [c.passage_id for c in candidates] == ["p0", "p1"]

    def test_from_profile(self):
        store = MemoryVectorStore(dimension=DIMENSION)

        assert KeywordAugmenter.from_profile(store, get_profile("product")) is None

        augmenter = KeywordAugmenter.from_profile(store, get_profile("legal"))
        assert augmenter.synthetic_similarity == 0.85
        assert augmenter.max_results == 10
