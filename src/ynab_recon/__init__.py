"""YNAB account reconciliation against bank statement exports."""

__version__ = "0.1.0"
