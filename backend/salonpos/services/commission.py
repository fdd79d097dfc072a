# Overview: Per-line commission and salon-owner split; pure arithmetic.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..money import HUNDRED, ZERO, quantize_money, quantize_rate, to_decimal


@dataclass(frozen=True)
class CommissionSplit:
    commission_rate: Decimal
    salon_owner_rate: Decimal
    commission_amount: Decimal
    salon_owner_amount: Decimal


def split_line(line_total, commission_rate, salon_owner_rate) -> CommissionSplit:
    """
    amount = line_total * rate / 100 for each party.

    The rates are independent percentages, so the two amounts need not add
    up to the line total.
    """
    total = to_decimal(line_total)
    commission = quantize_rate(commission_rate if commission_rate is not None else ZERO)
    owner = quantize_rate(salon_owner_rate if salon_owner_rate is not None else ZERO)

    return CommissionSplit(
        commission_rate=commission,
        salon_owner_rate=owner,
        commission_amount=quantize_money(total * commission / HUNDRED),
        salon_owner_amount=quantize_money(total * owner / HUNDRED),
    )
