"""Currency helpers shared by the ledger client, matcher and renderers."""

from decimal import Decimal

MILLIUNITS_PER_UNIT = Decimal("1000")

# Character budget for rendered reports
CHARACTER_LIMIT = 25000


def milliunits_to_amount(milliunits: int) -> Decimal:
    """Convert ledger milliunits (e.g. -5000) to a currency amount (-5.000)."""
    return Decimal(milliunits) / MILLIUNITS_PER_UNIT


def format_currency(amount: Decimal, currency: str = "$") -> str:
    """Format an amount for display, sign first: -$5.00."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency}{abs(amount):,.2f}"


def truncate_response(text: str, limit: int = CHARACTER_LIMIT) -> tuple[str, bool]:
    """
    Truncate text to fit a character budget.

    Args:
        text: Text to truncate
        limit: Maximum characters, including the truncation marker

    Returns:
        Tuple of (text, was_truncated)
    """
    if len(text) <= limit:
        return text, False

    # Leave room for the marker
    truncated = text[: max(0, limit - 200)]
    marker = (
        f"\n\n[Response truncated from {len(text)} to {len(truncated)} characters. "
        "Use --format json or a narrower statement to see more results.]"
    )
    return truncated + marker, True
