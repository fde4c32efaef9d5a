from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_cents(amount: Decimal | float | int) -> int:
    """Convert a currency amount to integer cents, rounding half up.

    Floats go through str() first so that 0.1 becomes exactly 10 cents
    instead of 10.000000000000000555 before rounding.
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return int((amount / CENT).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Inverse of to_cents: integer cents to a two-place Decimal."""
    return (Decimal(cents) * CENT).quantize(CENT)
