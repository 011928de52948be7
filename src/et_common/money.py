"""Money helpers: amounts are stored as integer cents.

The API speaks decimal amounts (25.5); the primary store and the mirror keep
BIGINT cents so SUM() is exact. Conversion happens only at the schema layer.
"""

from decimal import ROUND_HALF_UP, Decimal

# Largest accepted amount; its cents value stays well inside BIGINT
MAX_AMOUNT = 10_000_000_000_000


def to_cents(amount: float | int | Decimal) -> int:
    """Convert a decimal amount to cents, rounding half-up: 25.505 -> 2551."""
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(quantized * 100)


def from_cents(cents: int | Decimal | None) -> float:
    """Convert cents back to a decimal amount: 2550 -> 25.5. None -> 0.0."""
    if cents is None:
        return 0.0
    return float(Decimal(int(cents)) / 100)


def average_from_cents(avg_cents: float | Decimal | None) -> float:
    """AVG() over a cents column comes back fractional; round to 2 decimals."""
    if avg_cents is None:
        return 0.0
    return round(float(avg_cents) / 100, 2)
