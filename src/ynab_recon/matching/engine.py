"""
Multi-pass matching engine for account reconciliation.
Pairs ledger transactions with statement transactions, highest confidence first.
"""

from decimal import Decimal
from typing import Optional, Union
import logging

from ..config import MatchingConfig, MatchingPassConfig
from ..models.transaction import (
    LedgerTransaction,
    MatchType,
    StatementTransaction,
    TransactionMatch,
)
from .similarity import DescriptionSimilarity
from .strategies import AmountOnlyPass, MatchingPass, SimilarityPass

logger = logging.getLogger(__name__)


class TransactionMatcher:
    """
    Greedy multi-pass matcher.

    Passes run in priority order. Within a pass, ledger transactions are
    taken in input order and each takes the first acceptable statement
    transaction still available. Anything matched is removed from both
    pools before the next pass. The result is order-sensitive by design:
    there is no search for a globally best assignment.
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        similarity: Optional[DescriptionSimilarity] = None,
    ):
        """
        Initialize the matcher.

        Args:
            config: Matching configuration (defaults if omitted)
            similarity: Description scorer (built from config if omitted)
        """
        self.config = config or MatchingConfig()
        self.similarity = similarity or DescriptionSimilarity.from_config(
            self.config.similarity
        )
        self.passes = self._build_passes()

    def _build_passes(self) -> list[MatchingPass]:
        """Build the enabled passes from configuration, ordered by priority."""
        enabled = [p for p in self.config.passes if p.enabled]
        passes = [self._create_pass(p) for p in sorted(enabled, key=lambda p: p.priority)]
        for matching_pass in passes:
            logger.debug(f"Loaded matching pass: {matching_pass.name}")
        return passes

    def _create_pass(self, pass_config: MatchingPassConfig) -> MatchingPass:
        match_type = MatchType(pass_config.match_type)

        if pass_config.min_similarity is None:
            return AmountOnlyPass(
                name=pass_config.name,
                max_days=pass_config.max_days,
                match_type=match_type,
                confidence=pass_config.confidence_base,
            )

        return SimilarityPass(
            name=pass_config.name,
            max_days=pass_config.max_days,
            match_type=match_type,
            similarity=self.similarity,
            min_similarity=pass_config.min_similarity,
            confidence_base=pass_config.confidence_base,
            confidence_scale=pass_config.confidence_scale,
        )

    def match(
        self,
        ledger_transactions: list[LedgerTransaction],
        statement_transactions: list[StatementTransaction],
        tolerance: Union[Decimal, float, str, None] = None,
    ) -> list[TransactionMatch]:
        """
        Match ledger transactions against statement transactions.

        Args:
            ledger_transactions: Ledger side, in the order to be matched
            statement_transactions: Statement side, in statement order
            tolerance: Largest accepted amount difference (config default if None)

        Returns:
            Matched pairs in the order found, then unmatched ledger entries,
            then unmatched statement entries. Every input transaction
            appears exactly once.
        """
        if tolerance is None:
            tolerance = self.config.default_tolerance
        tolerance = Decimal(str(tolerance))

        logger.info(
            f"Matching {len(ledger_transactions)} ledger and "
            f"{len(statement_transactions)} statement transactions "
            f"(tolerance {tolerance})"
        )

        available_ledger = set(range(len(ledger_transactions)))
        available_statement = set(range(len(statement_transactions)))
        matches: list[TransactionMatch] = []

        for matching_pass in self.passes:
            found = 0
            for ledger_index, ledger_txn in enumerate(ledger_transactions):
                if ledger_index not in available_ledger:
                    continue

                candidates = (
                    (i, stmt_txn)
                    for i, stmt_txn in enumerate(statement_transactions)
                    if i in available_statement
                )
                result = matching_pass.find_match(ledger_txn, candidates, tolerance)
                if result is None:
                    continue

                stmt_index, confidence = result
                stmt_txn = statement_transactions[stmt_index]
                discrepancy = None
                if matching_pass.match_type == MatchType.FUZZY:
                    discrepancy = abs(ledger_txn.amount_value - stmt_txn.amount)

                matches.append(
                    TransactionMatch(
                        match_type=matching_pass.match_type,
                        confidence=confidence,
                        ledger_transaction=ledger_txn,
                        statement_transaction=stmt_txn,
                        discrepancy=discrepancy,
                        match_tier=matching_pass.name,
                    )
                )
                available_ledger.discard(ledger_index)
                available_statement.discard(stmt_index)
                found += 1

            logger.debug(
                f"Pass {matching_pass.name}: {found} matches, "
                f"{len(available_ledger)} ledger and {len(available_statement)} "
                f"statement remaining"
            )

        for ledger_index, ledger_txn in enumerate(ledger_transactions):
            if ledger_index in available_ledger:
                matches.append(
                    TransactionMatch(
                        match_type=MatchType.UNMATCHED,
                        confidence=0.0,
                        ledger_transaction=ledger_txn,
                    )
                )

        for stmt_index, stmt_txn in enumerate(statement_transactions):
            if stmt_index in available_statement:
                matches.append(
                    TransactionMatch(
                        match_type=MatchType.UNMATCHED,
                        confidence=0.0,
                        statement_transaction=stmt_txn,
                    )
                )

        logger.info(
            f"Matching complete: {len(ledger_transactions) - len(available_ledger)} "
            f"pairs, {len(available_ledger)} ledger-only, "
            f"{len(available_statement)} statement-only"
        )

        return matches
