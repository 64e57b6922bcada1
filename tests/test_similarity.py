"""
Tests for payee/description similarity.
"""

from dataclasses import FrozenInstanceError

import pytest

from ynab_recon.config import SimilarityConfig
from ynab_recon.matching.similarity import (
    EMPTY_SIMILARITY,
    DescriptionSimilarity,
    SimilarityVocabulary,
)


@pytest.fixture
def similarity():
    return DescriptionSimilarity.from_config(SimilarityConfig())


class TestExtractKeywords:
    """Keyword extraction."""

    def test_drops_noise(self, similarity):
        keywords = similarity.extract_keywords("ACH WEB PAYMENT 12345 TO Acme Market #42")
        assert keywords == ["acme", "market"]

    def test_aliases_and_dedupe(self, similarity):
        keywords = similarity.extract_keywords("PwP Privacy.com Privacycom TN: 5199481 WEB ID")
        assert keywords == ["privacy", "com"]

    def test_compound_tokens_add_parts(self, similarity):
        keywords = similarity.extract_keywords("MCDONALDMAZDA SERVICE")
        assert keywords == ["mcdonaldmazda", "service", "mcdonald", "mazda"]

    def test_splits_on_punctuation(self, similarity):
        assert similarity.extract_keywords("shell_oil/station") == ["shell", "oil", "station"]


class TestScore:
    """Similarity scoring rules."""

    def test_case_insensitive_identical(self, similarity):
        assert similarity("Acme Market", "ACME MARKET") == 1.0

    def test_both_empty(self, similarity):
        assert similarity("", "ACH WEB") == EMPTY_SIMILARITY

    def test_one_side_empty(self, similarity):
        assert similarity("Starbucks", "123 456") == 0.0

    def test_no_overlap(self, similarity):
        assert similarity("Target", "Shell Oil") == 0.0

    def test_whole_string_containment_floor(self, similarity):
        # Two of three keywords shared (0.7), raised by containment
        assert similarity("Corner Cafe", "Corner Cafe Downtown 42") == 0.8

    def test_partial_token_floor(self, similarity):
        assert similarity("Netflix Streaming", "NETFLIXCOM STREAMIN") == 0.6

    def test_two_shared_keywords_floor(self, similarity):
        assert similarity("Blue Bottle Coffee", "BOTTLE COFFEE ROASTERS OAKLAND") == 0.7

    def test_important_token_boost(self, similarity):
        # One shared keyword of two gives 0.5, boosted by 0.3
        score = similarity("Privacy", "PwP Privacy.com Privacycom TN: 5199481 WEB ID")
        assert score == pytest.approx(0.8)

    def test_boost_is_capped(self, similarity):
        assert similarity("Amazon", "AMAZON") == 1.0

    def test_score_range(self, similarity):
        pairs = [
            ("Acme Market", "ACME"),
            ("", ""),
            ("Walmart Supercenter", "WAL-MART #1234"),
            ("Hyland Village", "HYLANDVILLAGE RENT"),
        ]
        for ledger, bank in pairs:
            assert 0.0 <= similarity(ledger, bank) <= 1.0


class TestVocabulary:
    """Injected, immutable vocabulary."""

    def test_important_tokens_are_configurable(self):
        plain = DescriptionSimilarity(SimilarityVocabulary())
        boosted = DescriptionSimilarity(
            SimilarityVocabulary(important_tokens=frozenset({"acme"}))
        )

        assert plain("Acme Supplies", "ACME HARDWARE") == 0.6
        assert boosted("Acme Supplies", "ACME HARDWARE") == pytest.approx(0.8)

    def test_vocabulary_is_immutable(self):
        vocabulary = SimilarityVocabulary.from_config(SimilarityConfig())

        with pytest.raises(FrozenInstanceError):
            vocabulary.stop_words = frozenset()
        with pytest.raises(TypeError):
            vocabulary.aliases["new"] = "alias"

    def test_from_config_lowercases(self):
        config = SimilarityConfig(
            stop_words=["FOO"], aliases={"BAR": "Baz"}, important_tokens=["QUX"]
        )

        vocabulary = SimilarityVocabulary.from_config(config)

        assert "foo" in vocabulary.stop_words
        assert vocabulary.aliases["bar"] == "baz"
        assert "qux" in vocabulary.important_tokens
