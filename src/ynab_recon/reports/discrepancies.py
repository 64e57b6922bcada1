"""
Discrepancy extraction and reconciliation verdict.
"""

from decimal import Decimal
from typing import Union
import logging

from ..models.report import (
    Discrepancy,
    DiscrepancyType,
    ReconciliationStatus,
    ReconciliationSummary,
)
from ..models.transaction import MatchType, TransactionMatch
from ..utils.currency import format_currency

logger = logging.getLogger(__name__)

# Largest balance difference that can still be "needs review"
REVIEW_BALANCE_LIMIT = Decimal("10")
REVIEW_MAX_DISCREPANCIES = 2
LOW_CONFIDENCE = 0.8


class DiscrepancyAnalyzer:
    """Turns matcher output into discrepancies, a verdict and recommendations."""

    def __init__(
        self,
        tolerance: Union[Decimal, float, str] = Decimal("0.01"),
        currency: str = "$",
    ):
        """
        Args:
            tolerance: Amount tolerance used for the run
            currency: Currency symbol for descriptions
        """
        self.tolerance = Decimal(str(tolerance))
        self.currency = currency

    def _money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency)

    def analyze(self, matches: list[TransactionMatch]) -> list[Discrepancy]:
        """
        Extract discrepancies from a match list.

        Unmatched ledger entries are missing from the statement, unmatched
        statement entries are missing from the ledger, and fuzzy matches whose
        amounts differ by more than the tolerance are amount mismatches.
        """
        discrepancies: list[Discrepancy] = []

        for match in matches:
            if not match.is_unmatched_ledger:
                continue
            ledger = match.ledger_transaction
            discrepancies.append(
                Discrepancy(
                    type=DiscrepancyType.MISSING_STATEMENT,
                    description=(
                        f"Ledger transaction not found in statement: "
                        f"{ledger.payee_name or 'Unknown'} - "
                        f"{self._money(ledger.amount_value)} on {ledger.date.isoformat()}"
                    ),
                    amount=ledger.amount_value,
                    transaction_id=ledger.id,
                )
            )

        for match in matches:
            if not match.is_unmatched_statement:
                continue
            stmt = match.statement_transaction
            discrepancies.append(
                Discrepancy(
                    type=DiscrepancyType.MISSING_LEDGER,
                    description=(
                        f"Statement transaction not found in ledger: "
                        f"{stmt.description} - {self._money(stmt.amount)} "
                        f"on {stmt.date.isoformat()}"
                    ),
                    amount=stmt.amount,
                )
            )

        for match in matches:
            if match.match_type != MatchType.FUZZY or match.discrepancy is None:
                continue
            if match.discrepancy <= self.tolerance:
                continue
            discrepancies.append(
                Discrepancy(
                    type=DiscrepancyType.AMOUNT_MISMATCH,
                    description=(
                        f"Amount mismatch: ledger "
                        f"{self._money(match.ledger_transaction.amount_value)} vs statement "
                        f"{self._money(match.statement_transaction.amount)} "
                        f"(diff: {self._money(match.discrepancy)})"
                    ),
                    amount=match.discrepancy,
                    transaction_id=match.ledger_transaction_id,
                )
            )

        logger.debug(f"Found {len(discrepancies)} discrepancies")
        return discrepancies

    def build_summary(
        self,
        matches: list[TransactionMatch],
        discrepancies: list[Discrepancy],
        balance_difference: Decimal,
    ) -> ReconciliationSummary:
        """
        Compute the verdict, confidence score and recommendations.

        Args:
            matches: Full matcher output
            discrepancies: Output of analyze()
            balance_difference: Ledger balance minus statement balance

        Returns:
            ReconciliationSummary
        """
        paired = sum(1 for m in matches if m.is_matched)
        confidence_score = paired / len(matches) if matches else 0.0

        abs_difference = abs(balance_difference)
        if abs_difference <= self.tolerance and not discrepancies:
            status = ReconciliationStatus.BALANCED
        elif (
            len(discrepancies) <= REVIEW_MAX_DISCREPANCIES
            and abs_difference <= REVIEW_BALANCE_LIMIT
        ):
            status = ReconciliationStatus.NEEDS_REVIEW
        else:
            status = ReconciliationStatus.UNBALANCED

        largest = max(
            [abs(d.amount) for d in discrepancies if d.amount is not None] + [abs_difference]
        )

        recommendations: list[str] = []
        if status == ReconciliationStatus.BALANCED:
            recommendations.append("Account is fully reconciled - no action needed")
        else:
            if abs_difference > self.tolerance:
                recommendations.append(
                    f"Balance difference of {self._money(balance_difference)} needs investigation"
                )

            missing_ledger = sum(
                1 for d in discrepancies if d.type == DiscrepancyType.MISSING_LEDGER
            )
            missing_statement = sum(
                1 for d in discrepancies if d.type == DiscrepancyType.MISSING_STATEMENT
            )
            if missing_ledger:
                recommendations.append(
                    f"{missing_ledger} statement transactions need to be added to the ledger"
                )
            if missing_statement:
                recommendations.append(
                    f"{missing_statement} ledger transactions may need to be removed "
                    "or marked as pending"
                )
            if confidence_score < LOW_CONFIDENCE:
                recommendations.append(
                    "Low confidence in transaction matching - manual review recommended"
                )

        logger.info(
            f"Reconciliation verdict: {status.value} "
            f"(confidence {confidence_score:.1%}, {len(discrepancies)} discrepancies)"
        )

        return ReconciliationSummary(
            status=status,
            confidence_score=confidence_score,
            total_discrepancies=len(discrepancies),
            largest_discrepancy=largest,
            recommendations=recommendations,
        )
