"""Money helpers — exact decimal amounts stored as integer minor units.

Prices, totals and payment amounts are persisted as whole cents so that
comparisons are exact. These helpers convert between the stored integers and
``Decimal`` values at the edges (API, seed data, display).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal("0.01")


def to_cents(amount) -> int:
    """Convert a decimal amount (Decimal, int or numeric string) to cents.

    Floats are rejected: a binary float cannot carry an exact currency value.
    """
    if isinstance(amount, float):
        raise TypeError("Monetary amounts must be Decimal, int or str, not float")
    try:
        value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    except InvalidOperation as exc:
        raise ValueError(f"Invalid monetary amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid monetary amount: {amount!r}")
    return int((value.quantize(CENTS, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def to_decimal(cents: int) -> Decimal:
    """Convert stored cents back to a two-place Decimal."""
    return (Decimal(int(cents)) / 100).quantize(CENTS)


def format_amount(cents: int) -> str:
    return str(to_decimal(cents))


def line_total_cents(quantity: int, unit_price_cents: int) -> int:
    return int(quantity) * int(unit_price_cents)
