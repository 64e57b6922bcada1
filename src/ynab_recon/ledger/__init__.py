"""YNAB ledger API client."""

from .client import APIErrorInfo, YNABClient, classify_api_error

__all__ = ["APIErrorInfo", "YNABClient", "classify_api_error"]
