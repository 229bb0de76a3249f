from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog

from .domain import CouponRule, money
from .errors import GatewayError, InvalidCouponError, ValidationError
from .gateway import PosGateway

logger = structlog.get_logger()


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def check_coupon_eligibility(
    coupon: Optional[dict],
    *,
    vendor_id: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> CouponRule:
    """Decide whether a stored coupon row may be applied to a cart of `subtotal`."""
    if coupon is None:
        raise InvalidCouponError("Coupon not found")
    if str(coupon["vendor_id"]) != str(vendor_id):
        raise InvalidCouponError("Coupon is not valid for this vendor")
    if coupon.get("status", "active") != "active":
        raise InvalidCouponError("Coupon is not active")

    now = now or datetime.now(timezone.utc)
    expiry = coupon.get("expiry_date")
    if expiry is not None:
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if expiry < now:
            raise InvalidCouponError("Coupon has expired")

    minimum = money(coupon.get("min_order_amount") or 0)
    if money(subtotal) < minimum:
        raise InvalidCouponError(f"Minimum order amount is {minimum}")

    max_usage = coupon.get("max_usage")
    if max_usage is not None and int(coupon.get("used_count") or 0) >= int(max_usage):
        raise InvalidCouponError("Coupon usage limit reached")

    return CouponRule(
        id=str(coupon["id"]),
        code=coupon["code"],
        vendor_id=str(coupon["vendor_id"]),
        kind=coupon["discount_type"],
        value=coupon["discount_value"],
    )


class CouponValidator:
    def __init__(self, gateway: PosGateway) -> None:
        self.gateway = gateway

    def validate(self, vendor_id: str, code: str, subtotal: Decimal) -> CouponRule:
        code = normalize_code(code)
        if not code:
            raise InvalidCouponError("Coupon code is required")
        try:
            rule = self.gateway.validate_coupon(vendor_id, code, money(subtotal))
        except InvalidCouponError:
            raise
        except (GatewayError, ValidationError) as e:
            logger.info("coupon_rejected", vendor_id=vendor_id, code=code, reason=str(e))
            raise InvalidCouponError(str(e)) from e
        logger.info("coupon_validated", vendor_id=vendor_id, code=code, coupon_id=rule.id)
        return rule
