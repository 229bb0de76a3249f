from __future__ import annotations

from decimal import Decimal

from .domain import ZERO, PaymentStatus, PaymentType, money, parse_amount
from .errors import ValidationError

STATUS_RANK: dict[str, int] = {"credit": 0, "partial": 1, "paid": 2}


def classify_payment(tendered: Decimal, grand_total: Decimal) -> PaymentStatus:
    tendered = money(tendered)
    if tendered >= money(grand_total):
        return "paid"
    if tendered > 0:
        return "partial"
    return "credit"


def resolve_tendered(plan_type: PaymentType, grand_total: Decimal, amount=None) -> Decimal:
    """Amount actually taken now for a payment plan, clamped to [0, grand_total]."""
    grand_total = money(grand_total)
    if plan_type == "full":
        tendered = grand_total
    elif plan_type == "partial":
        tendered = parse_amount(amount)
        if tendered < 0 or tendered > grand_total:
            raise ValidationError(f"Amount must be between 0 and {grand_total}")
    elif plan_type == "credit":
        tendered = ZERO
    else:
        raise ValidationError(f"Unknown payment type: {plan_type!r}")
    return max(ZERO, min(tendered, grand_total))
