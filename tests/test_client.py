"""
Tests for the YNAB API client and its retry policy.
"""

from datetime import date
import asyncio

import httpx
import pytest

from conftest import ynab_account, ynab_transaction
from ynab_recon.config import LedgerConfig, LedgerCredentials
from ynab_recon.ledger import YNABClient, classify_api_error
from ynab_recon.utils.exceptions import (
    ConfigurationError,
    LedgerAPIError,
    LedgerAuthError,
    UpstreamUnavailableError,
)

ANTI_BOT_PAGE = (
    "<!DOCTYPE html><html><body>Not allowed. We've detected some abnormal traffic "
    "from your network. Contact help@ynab.com.</body></html>"
)


def scripted_transport(responses):
    """
    MockTransport returning the given responses in order.

    Entries may be httpx.Response objects or exceptions to raise.
    """
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


def accounts_ok():
    payload = {"data": {"accounts": [ynab_account("a1", "Checking", 1000)]}}
    return httpx.Response(200, json=payload)


def fetch_accounts(transport, max_retries=3):
    async def _run():
        async with YNABClient(
            "token", max_retries=max_retries, retry_base_delay=0, transport=transport
        ) as client:
            return await client.get_accounts("budget-1")

    return asyncio.run(_run())


class TestEndpoints:
    """Request shapes and payload parsing."""

    def test_get_accounts(self, ynab_transport):
        transport = ynab_transport(
            [ynab_account("a1", "Checking", 125000), ynab_account("a2", "Old", 0, closed=True)],
            [],
        )

        accounts = fetch_accounts(transport)

        assert [a.name for a in accounts] == ["Checking", "Old"]
        assert accounts[0].balance == 125000
        assert str(accounts[0].balance_value) == "125"
        assert accounts[1].closed

        request = transport.requests[0]
        assert request.url.path == "/v1/budgets/budget-1/accounts"
        assert request.headers["Authorization"] == "Bearer token"

    def test_get_account_transactions_filters_deleted(self, ynab_transport):
        transport = ynab_transport(
            [],
            [
                ynab_transaction("t1", "2024-03-01", -5000, "Acme Market"),
                ynab_transaction("t2", "2024-03-02", -1000, None, deleted=True),
                ynab_transaction("t3", "2024-03-03", 2000, None),
            ],
        )

        async def _run():
            async with YNABClient("token", transport=transport) as client:
                return await client.get_account_transactions(
                    "budget-1", "a1", date(2023, 12, 1)
                )

        transactions = asyncio.run(_run())

        assert [t.id for t in transactions] == ["t1", "t3"]
        assert transactions[0].date == date(2024, 3, 1)
        assert transactions[1].payee_name == ""
        request = transport.requests[0]
        assert request.url.path == "/v1/budgets/budget-1/accounts/a1/transactions"
        assert request.url.params["since_date"] == "2023-12-01"

    def test_list_budgets(self, ynab_transport):
        transport = ynab_transport([], [])

        async def _run():
            async with YNABClient("token", transport=transport) as client:
                return await client.list_budgets()

        budgets = asyncio.run(_run())

        assert budgets[0]["id"] == "budget-1"
        assert budgets[0]["name"] == "My Budget"

    def test_from_config(self):
        credentials = LedgerCredentials(api_token="secret", budget_id="b1")
        client = YNABClient.from_config(
            credentials, LedgerConfig(base_url="https://example.test/v1/", max_retries=5)
        )

        assert client.api_token == "secret"
        assert client.base_url == "https://example.test/v1"
        assert client.max_retries == 5

    def test_missing_token(self):
        with pytest.raises(ConfigurationError, match="YNAB_API_TOKEN"):
            YNABClient("")

    def test_requires_context_manager(self):
        client = YNABClient("token")
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(client.get_accounts("budget-1"))


class TestRetryPolicy:
    """Which failures are retried, and what is raised at the end."""

    def test_server_error_then_success(self):
        transport = scripted_transport([httpx.Response(503, text="busy"), accounts_ok()])

        accounts = fetch_accounts(transport)

        assert len(transport.calls) == 2
        assert accounts[0].id == "a1"

    def test_server_error_exhausts_retries(self):
        transport = scripted_transport([httpx.Response(500, text="oops")])

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            fetch_accounts(transport, max_retries=3)

        assert len(transport.calls) == 3
        assert exc_info.value.status_code == 500
        assert "server error" in str(exc_info.value)

    def test_network_error_is_retried(self):
        transport = scripted_transport([httpx.ConnectError("refused"), accounts_ok()])

        accounts = fetch_accounts(transport)

        assert len(transport.calls) == 2
        assert len(accounts) == 1

    def test_network_error_exhausts_retries(self):
        transport = scripted_transport([httpx.ConnectError("refused")])

        with pytest.raises(UpstreamUnavailableError, match="Network connection error"):
            fetch_accounts(transport, max_retries=2)

        assert len(transport.calls) == 2

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_error_not_retried(self, status):
        transport = scripted_transport(
            [httpx.Response(status, json={"error": {"id": "401", "name": "unauthorized"}})]
        )

        with pytest.raises(LedgerAuthError) as exc_info:
            fetch_accounts(transport)

        assert len(transport.calls) == 1
        assert exc_info.value.status_code == status

    def test_rate_limit_without_retry_after(self):
        transport = scripted_transport([httpx.Response(429, text="too_many_requests")])

        with pytest.raises(UpstreamUnavailableError, match="rate limit"):
            fetch_accounts(transport)

        assert len(transport.calls) == 1

    def test_rate_limit_with_retry_after(self):
        transport = scripted_transport(
            [httpx.Response(429, headers={"Retry-After": "0"}), accounts_ok()]
        )

        accounts = fetch_accounts(transport)

        assert len(transport.calls) == 2
        assert accounts[0].name == "Checking"

    def test_anti_bot_page_not_retried(self):
        transport = scripted_transport([httpx.Response(403, text=ANTI_BOT_PAGE)])

        with pytest.raises(UpstreamUnavailableError, match="unusual activity"):
            fetch_accounts(transport)

        assert len(transport.calls) == 1

    def test_not_found_is_plain_api_error(self):
        transport = scripted_transport(
            [
                httpx.Response(
                    404,
                    json={
                        "error": {
                            "id": "404.2",
                            "name": "resource_not_found",
                            "detail": "Resource not found",
                        }
                    },
                )
            ]
        )

        with pytest.raises(LedgerAPIError) as exc_info:
            fetch_accounts(transport)

        assert not isinstance(exc_info.value, UpstreamUnavailableError)
        assert "Resource not found" in str(exc_info.value)
        assert len(transport.calls) == 1

    def test_html_success_body_is_retried(self):
        transport = scripted_transport(
            [httpx.Response(200, text="<html><body>maintenance</body></html>"), accounts_ok()]
        )

        accounts = fetch_accounts(transport)

        assert len(transport.calls) == 2
        assert len(accounts) == 1


class TestClassifyApiError:
    """Error classification."""

    def test_retry_after_parsed(self):
        info = classify_api_error(httpx.Response(429, headers={"Retry-After": "30"}))

        assert info.is_rate_limited
        assert info.retry_after == 30.0
        assert info.retryable
        assert "Please wait 30 seconds" in info.user_message

    def test_bad_retry_after_ignored(self):
        info = classify_api_error(httpx.Response(429, headers={"Retry-After": "soon"}))

        assert info.retry_after is None
        assert not info.retryable

    def test_network(self):
        info = classify_api_error(error=httpx.ReadTimeout("slow"))

        assert info.is_network_error
        assert info.retryable
        assert info.unavailable

    def test_bad_request(self):
        info = classify_api_error(httpx.Response(400, json={"error": {"detail": "Bad date"}}))

        assert not info.retryable
        assert not info.unavailable
        assert info.user_message == "YNAB API error: Bad date"
