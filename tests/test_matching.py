"""
Tests for the multi-pass transaction matcher.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ynab_recon.config import DEFAULT_MATCHING_PASSES, MatchingConfig, MatchingPassConfig
from ynab_recon.matching import AmountOnlyPass, SimilarityPass, TransactionMatcher
from ynab_recon.models import MatchType

DAY = date(2024, 3, 1)
PASS_ORDER = ["exact", "strong", "fuzzy", "amount_only"]


@pytest.fixture
def matcher():
    return TransactionMatcher()


class TestPassConstruction:
    """Passes built from configuration."""

    def test_default_ladder(self, matcher):
        assert [p.name for p in matcher.passes] == PASS_ORDER
        assert isinstance(matcher.passes[0], SimilarityPass)
        assert isinstance(matcher.passes[-1], AmountOnlyPass)

    def test_passes_sorted_by_priority_and_filtered(self):
        passes = [MatchingPassConfig(**p) for p in reversed(DEFAULT_MATCHING_PASSES)]
        passes[0].enabled = False  # amount_only

        matcher = TransactionMatcher(MatchingConfig(passes=passes))

        assert [p.name for p in matcher.passes] == ["exact", "strong", "fuzzy"]


class TestScenarios:
    """Reference reconciliation scenarios."""

    def test_identical_transaction_is_exact(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY, "ACME MARKET", "-5.00")]

        matches = matcher.match(ledger, statement, Decimal("0.01"))

        assert len(matches) == 1
        assert matches[0].match_type == MatchType.EXACT
        assert matches[0].confidence == 1.0
        assert matches[0].match_tier == "exact"
        assert matches[0].discrepancy is None

    def test_amount_outside_tolerance_never_matches(
        self, matcher, make_ledger_txn, make_stmt_txn
    ):
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY, "ACME MARKET", "-5.10")]

        matches = matcher.match(ledger, statement, Decimal("0.01"))

        assert [m.match_type for m in matches] == [MatchType.UNMATCHED, MatchType.UNMATCHED]
        assert matches[0].is_unmatched_ledger
        assert matches[1].is_unmatched_statement
        assert all(m.confidence == 0.0 for m in matches)


class TestPasses:
    """Each rung of the ladder."""

    def test_strong_pass(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -4750, "Corner Cafe")]
        statement = [make_stmt_txn(DAY + timedelta(days=2), "Corner Cafe Downtown 42", "-4.75")]

        match = matcher.match(ledger, statement)[0]

        assert match.match_type == MatchType.FUZZY
        assert match.match_tier == "strong"
        assert match.confidence == pytest.approx(0.8 + 0.2 * 0.8)
        assert match.discrepancy == Decimal("0")

    def test_fuzzy_pass(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -6500, "Blue Bottle Coffee")]
        statement = [
            make_stmt_txn(DAY + timedelta(days=4), "BOTTLE COFFEE ROASTERS OAKLAND", "-6.50")
        ]

        match = matcher.match(ledger, statement)[0]

        assert match.match_tier == "fuzzy"
        assert match.confidence == pytest.approx(0.6 + 0.2 * 0.7)

    def test_amount_only_pass(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -20000, "Target")]
        statement = [make_stmt_txn(DAY + timedelta(days=6), "Shell Oil", "-20.00")]

        match = matcher.match(ledger, statement)[0]

        assert match.match_type == MatchType.FUZZY
        assert match.match_tier == "amount_only"
        assert match.confidence == 0.3

    def test_date_beyond_every_window(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -20000, "Acme Market")]
        statement = [make_stmt_txn(DAY + timedelta(days=8), "ACME MARKET", "-20.00")]

        matches = matcher.match(ledger, statement)

        assert all(m.match_type == MatchType.UNMATCHED for m in matches)

    def test_date_difference_is_symmetric(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY - timedelta(days=1), "ACME MARKET", "-5.00")]

        assert matcher.match(ledger, statement)[0].match_type == MatchType.EXACT


class TestTolerance:
    """Amount tolerance is inclusive and applies to every pass."""

    def test_difference_equal_to_tolerance_matches(
        self, matcher, make_ledger_txn, make_stmt_txn
    ):
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY, "ACME MARKET", "-5.01")]

        match = matcher.match(ledger, statement, Decimal("0.01"))[0]

        assert match.match_type == MatchType.EXACT

    def test_wider_tolerance(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY + timedelta(days=2), "ACME MARKET", "-5.50")]

        match = matcher.match(ledger, statement, Decimal("1.00"))[0]

        assert match.match_tier == "strong"
        assert match.discrepancy == Decimal("0.50")

    def test_tolerance_from_config(self, make_ledger_txn, make_stmt_txn):
        matcher = TransactionMatcher(MatchingConfig(default_tolerance=0.5))
        ledger = [make_ledger_txn("t1", DAY, -5000, "Acme Market")]
        statement = [make_stmt_txn(DAY, "ACME MARKET", "-5.40")]

        assert matcher.match(ledger, statement)[0].is_matched

    def test_paired_amounts_within_tolerance(self, matcher, mixed_fixture):
        ledger, statement = mixed_fixture
        tolerance = Decimal("0.01")

        for match in matcher.match(ledger, statement, tolerance):
            if match.is_matched:
                delta = match.ledger_transaction.amount_value - match.statement_transaction.amount
                assert abs(delta) <= tolerance


@pytest.fixture
def mixed_fixture(make_ledger_txn, make_stmt_txn):
    ledger = [
        make_ledger_txn("l1", DAY, -52100, "Acme Market"),
        make_ledger_txn("l2", DAY, -4750, "Corner Cafe"),
        make_ledger_txn("l3", DAY + timedelta(days=2), 2500000, "Payroll"),
        make_ledger_txn("l4", DAY + timedelta(days=3), -20000, "Target"),
        make_ledger_txn("l5", DAY + timedelta(days=4), -20000, "Walmart"),
        make_ledger_txn("l6", DAY + timedelta(days=9), -99990, "Landlord"),
    ]
    statement = [
        make_stmt_txn(DAY, "ACME MARKET #12", "-52.10"),
        make_stmt_txn(DAY + timedelta(days=2), "Corner Cafe Downtown 42", "-4.75"),
        make_stmt_txn(DAY + timedelta(days=2), "PAYROLL DEPOSIT", "2500.00"),
        make_stmt_txn(DAY + timedelta(days=5), "POS PURCHASE", "-20.00"),
        make_stmt_txn(DAY + timedelta(days=5), "POS PURCHASE", "-20.00"),
        make_stmt_txn(DAY + timedelta(days=6), "Unknown merchant", "-7.77"),
    ]
    return ledger, statement


class TestProperties:
    """Structural properties of the matcher output."""

    def test_partition(self, matcher, mixed_fixture):
        ledger, statement = mixed_fixture

        matches = matcher.match(ledger, statement)

        ledger_seen = [m.ledger_transaction.id for m in matches if m.ledger_transaction]
        statement_seen = [id(m.statement_transaction) for m in matches if m.statement_transaction]
        assert sorted(ledger_seen) == sorted(t.id for t in ledger)
        assert sorted(statement_seen) == sorted(id(t) for t in statement)

    def test_duplicate_statement_rows_are_distinct(self, matcher, mixed_fixture):
        ledger, statement = mixed_fixture

        matches = matcher.match(ledger, statement)

        pos_matches = [
            m for m in matches
            if m.is_matched and m.statement_transaction.description == "POS PURCHASE"
        ]
        assert {m.ledger_transaction.id for m in pos_matches} == {"l4", "l5"}
        assert pos_matches[0].statement_transaction is statement[3]
        assert pos_matches[1].statement_transaction is statement[4]

    def test_output_order(self, matcher, mixed_fixture):
        ledger, statement = mixed_fixture

        matches = matcher.match(ledger, statement)

        tiers = [PASS_ORDER.index(m.match_tier) for m in matches if m.is_matched]
        assert tiers == sorted(tiers)

        kinds = [
            0 if m.is_matched else 1 if m.is_unmatched_ledger else 2 for m in matches
        ]
        assert kinds == sorted(kinds)
        assert [m.ledger_transaction.id for m in matches if m.is_unmatched_ledger] == ["l6"]
        unmatched_statement = [m for m in matches if m.is_unmatched_statement]
        assert [m.statement_transaction.description for m in unmatched_statement] == [
            "Unknown merchant"
        ]

    def test_idempotent(self, matcher, mixed_fixture):
        ledger, statement = mixed_fixture

        first = [m.to_dict() for m in matcher.match(ledger, statement)]
        second = [m.to_dict() for m in matcher.match(ledger, statement)]

        assert first == second

    def test_higher_pass_wins_over_input_order(self, matcher, make_ledger_txn, make_stmt_txn):
        """An exact candidate is claimed before earlier ledger rows reach the amount-only pass."""
        ledger = [
            make_ledger_txn("first", DAY, -10000, "Target"),
            make_ledger_txn("second", DAY, -10000, "Acme Market"),
        ]
        statement = [make_stmt_txn(DAY, "ACME MARKET", "-10.00")]

        matches = matcher.match(ledger, statement)

        assert matches[0].ledger_transaction.id == "second"
        assert matches[0].match_type == MatchType.EXACT
        assert matches[1].is_unmatched_ledger
        assert matches[1].ledger_transaction.id == "first"

    def test_greedy_first_candidate(self, matcher, make_ledger_txn, make_stmt_txn):
        ledger = [
            make_ledger_txn("a", DAY, -10000, "Target"),
            make_ledger_txn("b", DAY, -10000, "Walmart"),
        ]
        statement = [
            make_stmt_txn(DAY, "POS 1", "-10.00"),
            make_stmt_txn(DAY, "POS 2", "-10.00"),
        ]

        matches = matcher.match(ledger, statement)

        assert matches[0].ledger_transaction.id == "a"
        assert matches[0].statement_transaction is statement[0]
        assert matches[1].statement_transaction is statement[1]

    def test_empty_inputs(self, matcher, make_ledger_txn):
        assert matcher.match([], []) == []

        only_ledger = matcher.match([make_ledger_txn("t1", DAY, -1000, "X")], [])
        assert len(only_ledger) == 1
        assert only_ledger[0].is_unmatched_ledger
