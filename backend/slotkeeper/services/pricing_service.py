"""Price and platform-fee arithmetic in integer cents."""

from decimal import ROUND_HALF_UP, Decimal


def calculate_platform_fee(amount_cents: int, fee_percentage: float) -> int:
    """
    Application fee kept by the platform, rounded half-up to a whole cent.

    >>> calculate_platform_fee(5000, 0.10)
    500
    >>> calculate_platform_fee(1005, 0.10)
    101
    """
    if amount_cents < 0:
        raise ValueError("amount_cents cannot be negative")
    fee = Decimal(amount_cents) * Decimal(str(fee_percentage))
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
