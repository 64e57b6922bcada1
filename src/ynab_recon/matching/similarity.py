"""
Payee/description similarity used by the matching passes.

Bank descriptions are noisy ("PwP Privacy.com Privacycom TN: 5199481 WEB ID")
while ledger payees are short ("Privacy"). Similarity works on keyword sets
rather than raw strings, with floors and boosts tuned for that asymmetry.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping
import re

from ..config import SimilarityConfig

_TOKEN_SPLIT = re.compile(r"[\s\-_/:.]+")
_NON_WORD = re.compile(r"[^\w]")
_NUMERIC = re.compile(r"^\d+$")

# Returned when both sides reduce to nothing but noise words
EMPTY_SIMILARITY = 0.1


@dataclass(frozen=True)
class SimilarityVocabulary:
    """Immutable lookup tables for keyword extraction and scoring."""

    stop_words: frozenset[str] = frozenset()
    aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    compound_tokens: tuple[tuple[str, ...], ...] = ()
    important_tokens: frozenset[str] = frozenset()
    min_token_length: int = 3

    @classmethod
    def from_config(cls, config: SimilarityConfig) -> "SimilarityVocabulary":
        return cls(
            stop_words=frozenset(w.lower() for w in config.stop_words),
            aliases=MappingProxyType(
                {k.lower(): v.lower() for k, v in config.aliases.items()}
            ),
            compound_tokens=tuple(
                tuple(part.lower() for part in parts) for parts in config.compound_tokens
            ),
            important_tokens=frozenset(w.lower() for w in config.important_tokens),
            min_token_length=config.min_token_length,
        )


class DescriptionSimilarity:
    """Scores how likely a ledger payee and a statement description name the same party."""

    def __init__(self, vocabulary: SimilarityVocabulary):
        self.vocabulary = vocabulary

    @classmethod
    def from_config(cls, config: SimilarityConfig) -> "DescriptionSimilarity":
        return cls(SimilarityVocabulary.from_config(config))

    def extract_keywords(self, text: str) -> list[str]:
        """
        Reduce free text to distinct meaningful keywords.

        Drops short tokens, stop words and pure numbers, maps aliases to
        their canonical token, and adds the parts of known compound names.
        """
        vocab = self.vocabulary
        words = []
        for raw in _TOKEN_SPLIT.split(text.lower()):
            word = _NON_WORD.sub("", raw)
            if len(word) < vocab.min_token_length or word in vocab.stop_words:
                continue
            if _NUMERIC.match(word):
                continue
            words.append(vocab.aliases.get(word, word))

        extra = []
        for word in words:
            for parts in vocab.compound_tokens:
                if all(part in word for part in parts):
                    extra.extend(parts)

        # Dedupe, first occurrence wins
        return list(dict.fromkeys(words + extra))

    def __call__(self, ledger_payee: str, statement_description: str) -> float:
        return self.score(ledger_payee, statement_description)

    def score(self, ledger_payee: str, statement_description: str) -> float:
        """
        Similarity in [0, 1] between a ledger payee and a statement description.

        Args:
            ledger_payee: Payee name from the ledger
            statement_description: Description from the bank statement

        Returns:
            Similarity score
        """
        ledger_keywords = self.extract_keywords(ledger_payee)
        bank_keywords = self.extract_keywords(statement_description)

        if not ledger_keywords and not bank_keywords:
            return EMPTY_SIMILARITY
        if not ledger_keywords or not bank_keywords:
            return 0.0

        bank_set = set(bank_keywords)
        common = [k for k in ledger_keywords if k in bank_set]
        max_keywords = max(len(ledger_keywords), len(bank_keywords))
        similarity = len(common) / max_keywords

        if common:
            similarity = max(similarity, 0.5)
            if len(common) >= 2:
                similarity = max(similarity, 0.7)
            if len(common) == max_keywords:
                similarity = 1.0

        if any(k in self.vocabulary.important_tokens for k in common):
            boost = 0.3 if similarity > 0.3 else 0.4
            return min(1.0, similarity + boost)

        ledger_lower = ledger_payee.lower()
        bank_lower = statement_description.lower()
        if ledger_lower in bank_lower or bank_lower in ledger_lower:
            return max(similarity, 0.8)

        has_partial = any(
            a in b or b in a for a in ledger_keywords for b in bank_keywords
        )
        if has_partial:
            return max(similarity, 0.6)

        return similarity
