"""Matching engine, passes and description similarity."""

from .engine import TransactionMatcher
from .similarity import DescriptionSimilarity, SimilarityVocabulary
from .strategies import AmountOnlyPass, MatchingPass, SimilarityPass

__all__ = [
    "TransactionMatcher",
    "DescriptionSimilarity",
    "SimilarityVocabulary",
    "MatchingPass",
    "SimilarityPass",
    "AmountOnlyPass",
]
