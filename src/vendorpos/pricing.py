"""Cart pricing.

Unit prices on cart lines already include GST, so the cart subtotal is taxed
as-is. Additional services are entered without tax; their GST is computed
once when the service is created and only summed here.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Iterable, Optional

from .domain import (
    ZERO,
    AdditionalService,
    CartLine,
    CouponDiscount,
    DiscountSpec,
    ManualDiscount,
    NoDiscount,
    PricingResult,
    money,
    parse_amount,
)
from .errors import ValidationError

GST_RATE_PERCENT = Decimal("18")


def make_additional_service(
    name: str,
    base_amount,
    description: Optional[str] = None,
    *,
    service_id: Optional[str] = None,
) -> AdditionalService:
    amount = parse_amount(base_amount)
    if amount < 0:
        raise ValidationError("Service amount cannot be negative.")
    tax = money(amount * GST_RATE_PERCENT / 100)
    return AdditionalService(
        id=service_id or uuid.uuid4().hex,
        name=name.strip(),
        description=(description.strip() if description else None),
        base_amount=amount,
        tax_rate_percent=GST_RATE_PERCENT,
        tax_amount=tax,
        total_amount=amount + tax,
    )


def resolve_discount(discount: DiscountSpec, subtotal: Decimal) -> Decimal:
    if isinstance(discount, (CouponDiscount, ManualDiscount)):
        if discount.kind == "percentage":
            amount = money(subtotal * discount.value / 100)
        else:
            amount = discount.value
    elif isinstance(discount, NoDiscount) or discount is None:
        amount = ZERO
    else:
        raise ValidationError(f"Unsupported discount: {discount!r}")
    return max(ZERO, min(money(amount), subtotal))


def compute_pricing(
    lines: Iterable[CartLine],
    discount: DiscountSpec,
    additional_services: Iterable[AdditionalService] = (),
) -> PricingResult:
    lines = list(lines)
    subtotal = money(sum((ln.line_total for ln in lines), ZERO))
    discount_amount = resolve_discount(discount, subtotal)
    after_discount = max(ZERO, subtotal - discount_amount)
    services_total = money(sum((s.total_amount for s in additional_services), ZERO))
    return PricingResult(
        subtotal=subtotal,
        discount_amount=discount_amount,
        subtotal_after_discount=after_discount,
        additional_services_total=services_total,
        grand_total=after_discount + services_total,
        item_count=sum(ln.quantity for ln in lines),
    )
