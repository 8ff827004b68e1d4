"""Order pricing."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings

CENT = Decimal('0.01')


@dataclass(frozen=True)
class OrderAmounts:
    """Amounts in minor currency units (cents)."""

    amount: int
    fee_amount: int

    @property
    def items_amount(self) -> int:
        return self.amount - self.fee_amount


def _to_cents(value: Decimal) -> int:
    return int((value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_amounts(
    *,
    price: Decimal,
    num_places: int,
    num_seats: int,
    fee_rate: Optional[Decimal] = None,
) -> OrderAmounts:
    """
    Price ``num_seats`` seats of a Split.

    Each seat costs ``price / num_places``; the platform fee is a fraction of
    the seats' price. Both are rounded half-up to the cent, and the charged
    amount includes the fee.
    """
    if num_places < 1:
        raise ValueError("num_places must be positive")
    if fee_rate is None:
        fee_rate = settings.PLATFORM_FEE_RATE

    per_seat = Decimal(price) / num_places
    items = (per_seat * num_seats).quantize(CENT, rounding=ROUND_HALF_UP)
    fee = (items * Decimal(fee_rate)).quantize(CENT, rounding=ROUND_HALF_UP)

    return OrderAmounts(amount=_to_cents(items + fee), fee_amount=_to_cents(fee))
