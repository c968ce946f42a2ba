"""
Cents arithmetic helpers

All ledger amounts are integer cents. Rates are fractions (0.15 == 15%).
Rounding is half-up, so 0.5 cents always rounds away from zero.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_rate(amount_cents: int, rate: Number) -> int:
    """Commission on an amount; negative or missing amounts count as zero"""
    if not amount_cents or amount_cents <= 0 or not rate or rate <= 0:
        return 0
    return round_half_up(Decimal(amount_cents) * Decimal(str(rate)))


def to_cents(amount: Number) -> int:
    """Convert a currency amount (e.g. 10.99) to cents (1099)"""
    return round_half_up(Decimal(str(amount)) * 100)
