"""
Matching passes for ledger/statement reconciliation.
Each pass is one rung of the tolerance ladder.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional

from ..models.transaction import LedgerTransaction, MatchType, StatementTransaction
from .similarity import DescriptionSimilarity


class MatchingPass(ABC):
    """
    Abstract base class for matching passes.

    Every pass requires the amounts to agree within the run's tolerance and
    the dates to fall inside the pass's window; subclasses decide whether a
    candidate that clears those checks is accepted and with what confidence.
    """

    def __init__(self, name: str, max_days: int, match_type: MatchType):
        """
        Args:
            name: Pass name recorded on the matches it produces
            max_days: Largest accepted date difference in days
            match_type: Match type recorded on accepted pairs
        """
        self.name = name
        self.max_days = max_days
        self.match_type = match_type

    def find_match(
        self,
        ledger_txn: LedgerTransaction,
        candidates: Iterable[tuple[int, StatementTransaction]],
        tolerance: Decimal,
    ) -> Optional[tuple[int, float]]:
        """
        Find the first acceptable statement transaction.

        Args:
            ledger_txn: Ledger transaction to match
            candidates: (index, statement transaction) pairs in statement order
            tolerance: Largest accepted absolute amount difference

        Returns:
            (candidate index, confidence) of the first acceptable candidate,
            or None
        """
        for index, stmt_txn in candidates:
            if abs(ledger_txn.amount_value - stmt_txn.amount) > tolerance:
                continue
            if abs((ledger_txn.date - stmt_txn.date).days) > self.max_days:
                continue

            confidence = self.calculate_confidence(ledger_txn, stmt_txn)
            if confidence is not None:
                return index, confidence

        return None

    @abstractmethod
    def calculate_confidence(
        self,
        ledger_txn: LedgerTransaction,
        stmt_txn: StatementTransaction,
    ) -> Optional[float]:
        """
        Confidence for a candidate that passed the amount and date checks.

        Returns:
            Confidence in [0, 1], or None to reject the candidate
        """
        pass


class SimilarityPass(MatchingPass):
    """
    Pass that also requires payee/description similarity above a threshold.

    Confidence is confidence_base + confidence_scale * similarity.
    """

    def __init__(
        self,
        name: str,
        max_days: int,
        match_type: MatchType,
        similarity: DescriptionSimilarity,
        min_similarity: float,
        confidence_base: float,
        confidence_scale: float = 0.0,
    ):
        super().__init__(name, max_days, match_type)
        self.similarity = similarity
        self.min_similarity = min_similarity
        self.confidence_base = confidence_base
        self.confidence_scale = confidence_scale

    def calculate_confidence(
        self,
        ledger_txn: LedgerTransaction,
        stmt_txn: StatementTransaction,
    ) -> Optional[float]:
        score = self.similarity(ledger_txn.payee_name, stmt_txn.description)
        if score <= self.min_similarity:
            return None
        return min(1.0, self.confidence_base + self.confidence_scale * score)


class AmountOnlyPass(MatchingPass):
    """Pass that accepts on amount and date alone, at a fixed low confidence."""

    def __init__(
        self,
        name: str,
        max_days: int,
        match_type: MatchType = MatchType.FUZZY,
        confidence: float = 0.3,
    ):
        super().__init__(name, max_days, match_type)
        self.confidence = confidence

    def calculate_confidence(
        self,
        ledger_txn: LedgerTransaction,
        stmt_txn: StatementTransaction,
    ) -> Optional[float]:
        return self.confidence
