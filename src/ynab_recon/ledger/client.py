"""
YNAB REST API client used to fetch accounts and transactions.

Features:
- Single httpx.AsyncClient per YNABClient (async context manager)
- Bearer token authentication
- Bounded retry with exponential backoff, Retry-After respected for 429
- Auth failures and anti-bot responses are never retried
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
import asyncio
import logging

import httpx

from ..config import LedgerConfig, LedgerCredentials
from ..models.transaction import LedgerAccount, LedgerTransaction
from ..utils.exceptions import (
    ConfigurationError,
    LedgerAPIError,
    LedgerAuthError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

MAX_ERROR_DETAIL_CHARS = 200

ANTI_BOT_MARKERS = ("abnormal traffic",)
HTML_MARKERS = ("<html", "<!doctype", "<style")


@dataclass
class APIErrorInfo:
    """Classification of a failed ledger API call."""

    user_message: str
    technical_message: str
    status_code: Optional[int] = None
    is_rate_limited: bool = False
    is_auth_error: bool = False
    is_network_error: bool = False
    is_server_error: bool = False
    is_anti_bot: bool = False
    retry_after: Optional[float] = None  # seconds

    @property
    def retryable(self) -> bool:
        if self.is_auth_error or self.is_anti_bot:
            return False
        if self.is_rate_limited:
            return self.retry_after is not None
        return self.is_network_error or self.is_server_error

    @property
    def unavailable(self) -> bool:
        """The API is reachable in principle but is not serving us right now."""
        return (
            self.is_rate_limited
            or self.is_network_error
            or self.is_server_error
            or self.is_anti_bot
        )


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str:
    """YNAB error detail from a JSON error body, else the start of the body."""
    try:
        error = response.json().get("error", {})
        detail = error.get("detail") or error.get("name")
        if detail:
            return str(detail)
    except (ValueError, AttributeError):
        pass
    return response.text[:MAX_ERROR_DETAIL_CHARS]


def classify_api_error(
    response: Optional[httpx.Response] = None,
    error: Optional[Exception] = None,
) -> APIErrorInfo:
    """
    Classify a failed call from its response or transport exception.

    Args:
        response: Non-success HTTP response, if one was received
        error: Transport exception, if the request never completed

    Returns:
        APIErrorInfo with a user-facing message
    """
    if response is None:
        return APIErrorInfo(
            user_message=(
                "Network connection error. Please check your internet "
                "connection and try again."
            ),
            technical_message=f"Network error: {type(error).__name__}: {error}",
            is_network_error=True,
        )

    status = response.status_code
    body = response.text.lower()

    if any(marker in body for marker in ANTI_BOT_MARKERS):
        return APIErrorInfo(
            user_message=(
                "YNAB has temporarily blocked API access due to detected unusual "
                "activity. Please wait 15-30 minutes before trying again, or contact "
                "YNAB support at help@ynab.com if the issue persists."
            ),
            technical_message=(
                f"Anti-bot protection triggered (HTTP {status}): "
                f"{response.text[:MAX_ERROR_DETAIL_CHARS]}"
            ),
            status_code=status,
            is_anti_bot=True,
        )

    if status == 429:
        retry_after = _parse_retry_after(response.headers.get("retry-after"))
        wait = (
            f"Please wait {retry_after:g} seconds before trying again."
            if retry_after is not None
            else "Please wait a few minutes before trying again."
        )
        return APIErrorInfo(
            user_message=(
                f"YNAB API rate limit reached. You can make 200 requests per hour. {wait}"
            ),
            technical_message=f"Rate limit exceeded: {_error_detail(response)}",
            status_code=status,
            is_rate_limited=True,
            retry_after=retry_after,
        )

    if status in (401, 403):
        return APIErrorInfo(
            user_message=(
                "YNAB API authentication failed. Please check your API token "
                "and ensure it's valid."
            ),
            technical_message=f"Authentication error (HTTP {status}): {_error_detail(response)}",
            status_code=status,
            is_auth_error=True,
        )

    if status >= 500:
        return APIErrorInfo(
            user_message="YNAB API server error. Please try again in a few minutes.",
            technical_message=f"Server error (HTTP {status}): {_error_detail(response)}",
            status_code=status,
            is_server_error=True,
        )

    if any(marker in body for marker in HTML_MARKERS):
        return APIErrorInfo(
            user_message=(
                "YNAB API returned an unexpected response. This may indicate a "
                "temporary service issue. Please try again in a few minutes."
            ),
            technical_message=(
                f"Unexpected HTML response (HTTP {status}): "
                f"{response.text[:MAX_ERROR_DETAIL_CHARS]}"
            ),
            status_code=status,
            is_server_error=True,
        )

    return APIErrorInfo(
        user_message=f"YNAB API error: {_error_detail(response)}",
        technical_message=f"HTTP {status}: {response.text[:MAX_ERROR_DETAIL_CHARS]}",
        status_code=status,
    )


class YNABClient:
    """
    Async client for the YNAB API v1.

    Must be used as an async context manager to ensure proper connection cleanup:

        async with YNABClient(token) as client:
            accounts = await client.get_accounts(budget_id)
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.ynab.com/v1",
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_token: YNAB personal access token
            base_url: API root
            timeout: Per-request timeout in seconds
            max_retries: Total attempts per call, including the first
            retry_base_delay: First backoff delay in seconds, doubled per attempt
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if not api_token:
            raise ConfigurationError(
                "YNAB API token is not set. Export YNAB_API_TOKEN or add it to .env"
            )

        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_base_delay = retry_base_delay
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(
        cls,
        credentials: LedgerCredentials,
        config: Optional[LedgerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "YNABClient":
        config = config or LedgerConfig()
        return cls(
            api_token=credentials.api_token,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            transport=transport,
        )

    async def __aenter__(self) -> "YNABClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Accept": "application/json",
            },
            timeout=self.timeout,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "YNABClient must be used as async context manager: "
                "async with YNABClient(token) as client: ..."
            )
        return self._client

    async def _get(
        self,
        path: str,
        context: str,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """
        GET a YNAB endpoint and return its "data" object, retrying per policy.

        Raises:
            LedgerAuthError: Token rejected (never retried)
            UpstreamUnavailableError: Rate limited, blocked, or still failing
                after max_retries attempts
            LedgerAPIError: Any other non-success response
        """
        client = self._get_client()
        attempt = 1

        while True:
            try:
                response = await client.get(path, params=params)
            except httpx.RequestError as e:
                info = classify_api_error(error=e)
            else:
                if response.is_success:
                    try:
                        return response.json()["data"]
                    except (ValueError, KeyError, TypeError):
                        info = classify_api_error(response=response)
                        info.is_server_error = True
                else:
                    info = classify_api_error(response=response)

            logger.debug(f"[{context}] {info.technical_message}")

            if info.is_auth_error:
                raise LedgerAuthError(f"{context} failed: {info.user_message}", info.status_code)

            if not info.retryable or attempt >= self.max_retries:
                error_cls = UpstreamUnavailableError if info.unavailable else LedgerAPIError
                raise error_cls(f"{context} failed: {info.user_message}", info.status_code)

            if info.retry_after is not None:
                delay = info.retry_after
            else:
                delay = self.retry_base_delay * (2 ** (attempt - 1))

            logger.warning(
                f"[{context}] Attempt {attempt}/{self.max_retries} failed "
                f"({info.technical_message}), retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1

    async def list_budgets(self) -> list[dict[str, Any]]:
        """Budgets visible to the token, as id/name dictionaries."""
        data = await self._get("/budgets", "List budgets")
        return [
            {
                "id": b["id"],
                "name": b.get("name", ""),
                "last_modified_on": b.get("last_modified_on"),
            }
            for b in data.get("budgets", [])
        ]

    async def get_accounts(self, budget_id: str) -> list[LedgerAccount]:
        """All accounts of a budget, including closed and deleted ones."""
        data = await self._get(f"/budgets/{budget_id}/accounts", "Get accounts")
        return [LedgerAccount.from_api(a) for a in data.get("accounts", [])]

    async def get_account_transactions(
        self,
        budget_id: str,
        account_id: str,
        since_date: Optional[date] = None,
    ) -> list[LedgerTransaction]:
        """
        Non-deleted transactions of one account.

        Args:
            budget_id: Budget id
            account_id: Account id
            since_date: Only transactions on or after this date

        Returns:
            Ledger transactions in API order
        """
        params = {"since_date": since_date.isoformat()} if since_date else None
        data = await self._get(
            f"/budgets/{budget_id}/accounts/{account_id}/transactions",
            "Get transactions",
            params=params,
        )

        transactions = [LedgerTransaction.from_api(t) for t in data.get("transactions", [])]
        active = [t for t in transactions if not t.deleted]
        logger.info(
            f"Fetched {len(active)} ledger transactions for account {account_id}"
            f"{f' since {since_date.isoformat()}' if since_date else ''}"
        )
        return active
