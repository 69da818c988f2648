"""
Domain: ad posting price calculation (pure).

Pricing rules:
- Every targeted county is billed PRICE_PER_COUNTY_CENTS.
- Sales tax is TAX_RATE of the subtotal, rounded half-up to a whole cent.
- total = subtotal + tax.

All amounts are integer cents. The tax multiplication runs on Decimal so the
rounding point is exact: 1000 * 0.0625 = 62.5 rounds to 63, never 62.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .errors import field_error

PRICE_PER_COUNTY_CENTS: int = 500
TAX_RATE: Decimal = Decimal("0.0625")
CURRENCY: str = "usd"


@dataclass(frozen=True, slots=True)
class Pricing:
    """Price breakdown for one ad submission, in cents."""

    county_count: int
    subtotal: int
    tax: int
    total: int


def calculate_tax(subtotal: int, tax_rate: Decimal = TAX_RATE) -> int:
    """Tax on a subtotal in cents, rounded half-up to the cent."""

    return int((Decimal(subtotal) * tax_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_pricing(county_count: int) -> Pricing:
    """
    Calculate subtotal, tax and total for an ad targeting `county_count` counties.

    Raises:
        ValidationError: county_count is not a positive integer

    Example:
        calculate_pricing(3)
        # Pricing(county_count=3, subtotal=1500, tax=94, total=1594)
    """
    if isinstance(county_count, bool) or not isinstance(county_count, int) or county_count < 1:
        raise field_error("locations", "At least one county is required")

    subtotal = county_count * PRICE_PER_COUNTY_CENTS
    tax = calculate_tax(subtotal)

    return Pricing(
        county_count=county_count,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
    )


def format_cents(cents: int) -> str:
    """Format cents as a dollar string, e.g. 1063 -> '$10.63', -100 -> '-$1.00'."""

    sign = "-" if cents < 0 else ""
    return f"{sign}${Decimal(abs(cents)) / 100:.2f}"


__all__ = [
    "PRICE_PER_COUNTY_CENTS",
    "TAX_RATE",
    "CURRENCY",
    "Pricing",
    "calculate_tax",
    "calculate_pricing",
    "format_cents",
]
