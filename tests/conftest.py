"""Shared fixtures for the ynab_recon test suite."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
import json

import httpx
import pytest

from ynab_recon.models import LedgerTransaction, StatementTransaction
from ynab_recon.utils.currency import MILLIUNITS_PER_UNIT


CANONICAL_ROWS = [
    ("2024-03-01", "Acme Market groceries", "-52.10"),
    ("2024-03-02", "Corner Cafe downtown", "-4.75"),
    ("2024-03-03", "Payroll deposit ACME", "2500.00"),
    ("2024-03-04", "Electric utility bill", "-120.33"),
    ("2024-03-05", "Gas station purchase", "-38.00"),
    ("2024-03-06", "Bookstore purchase", "-19.99"),
    ("2024-03-07", "Pharmacy refill", "-12.40"),
    ("2024-03-08", "Streaming service", "-15.49"),
    ("2024-03-09", "Refund from retailer", "42.00"),
    ("2024-03-10", "Hardware store", "-67.25"),
]


@pytest.fixture
def canonical_csv() -> str:
    """Ten well-formed rows with a standard header."""
    lines = ["Date,Description,Amount"]
    lines += [",".join(row) for row in CANONICAL_ROWS]
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_ledger_txn():
    """Factory for ledger transactions (amounts in milliunits)."""

    def _make(
        id: str,
        txn_date: date,
        milliunits: int,
        payee: str = "",
        deleted: bool = False,
    ) -> LedgerTransaction:
        return LedgerTransaction(
            id=id, date=txn_date, amount=milliunits, payee_name=payee, deleted=deleted
        )

    return _make


@pytest.fixture
def make_stmt_txn():
    """Factory for statement transactions (amounts in currency units)."""

    def _make(txn_date: date, description: str, amount: str) -> StatementTransaction:
        return StatementTransaction(
            date=txn_date,
            description=description,
            amount=Decimal(amount),
            raw_line=f"{txn_date.isoformat()},{description},{amount}",
        )

    return _make


def amount_to_milliunits(amount: Decimal) -> int:
    """Convert a currency amount to integer ledger milliunits."""
    return int((amount * MILLIUNITS_PER_UNIT).to_integral_value())

def ynab_account(
    id: str,
    name: str,
    balance: int,
    closed: bool = False,
    deleted: bool = False,
) -> dict[str, Any]:
    """Account payload as the YNAB API returns it."""
    return {
        "id": id,
        "name": name,
        "type": "checking",
        "on_budget": True,
        "closed": closed,
        "deleted": deleted,
        "balance": balance,
    }


def ynab_transaction(
    id: str,
    txn_date: str,
    amount: int,
    payee: Optional[str],
    deleted: bool = False,
) -> dict[str, Any]:
    """Transaction payload as the YNAB API returns it."""
    return {
        "id": id,
        "date": txn_date,
        "amount": amount,
        "memo": None,
        "payee_name": payee,
        "deleted": deleted,
    }


@pytest.fixture
def ynab_transport():
    """
    Factory for an httpx.MockTransport serving a fake budget.

    The returned transport records every request on its ``requests`` list.
    """

    def _make(
        accounts: list[dict[str, Any]],
        transactions: list[dict[str, Any]],
    ) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            path = request.url.path
            if path.endswith("/transactions"):
                payload = {"data": {"transactions": transactions, "server_knowledge": 1}}
            elif path.endswith("/accounts"):
                payload = {"data": {"accounts": accounts, "server_knowledge": 1}}
            elif path.endswith("/budgets"):
                payload = {"data": {"budgets": [{"id": "budget-1", "name": "My Budget"}]}}
            else:
                return httpx.Response(
                    404,
                    json={"error": {"id": "404.2", "name": "not_found", "detail": "Not found"}},
                )
            return httpx.Response(200, content=json.dumps(payload))

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return _make
