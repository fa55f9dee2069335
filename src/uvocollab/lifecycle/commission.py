"""Platform commission split."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

PLATFORM_COMMISSION_RATE = Decimal("0.20")


class CommissionSplit(NamedTuple):
    platform_commission: float
    legend_amount: float


def split_commission(price: float) -> CommissionSplit:
    """Split ``price`` into the platform's cut and the payee's amount.

    The platform cut is rounded half-up to a whole unit; the payee gets the rest,
    so the two always sum to ``price``.
    """
    amount = Decimal(str(price))
    commission = (amount * PLATFORM_COMMISSION_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return CommissionSplit(float(commission), float(amount - commission))
