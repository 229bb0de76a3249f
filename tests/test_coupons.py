from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vendorpos.coupons import CouponValidator, check_coupon_eligibility, normalize_code
from vendorpos.errors import GatewayError, InvalidCouponError

D = Decimal
NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def _coupon(**overrides):
    row = {
        "id": "c-1",
        "vendor_id": "v-1",
        "code": "SAVE10",
        "discount_type": "percentage",
        "discount_value": D("10"),
        "status": "active",
        "expiry_date": NOW + timedelta(days=1),
        "min_order_amount": D("100"),
        "max_usage": 5,
        "used_count": 0,
    }
    row.update(overrides)
    return row


def _reason(coupon, subtotal="200"):
    with pytest.raises(InvalidCouponError) as exc:
        check_coupon_eligibility(coupon, vendor_id="v-1", subtotal=D(subtotal), now=NOW)
    return exc.value.reason


class TestCouponEligibility:
    def test_valid_coupon(self):
        rule = check_coupon_eligibility(_coupon(), vendor_id="v-1", subtotal=D("200"), now=NOW)
        assert rule.id == "c-1"
        assert rule.kind == "percentage"
        assert rule.value == D("10.00")

    def test_missing(self):
        assert _reason(None) == "Coupon not found"

    def test_other_vendor(self):
        assert _reason(_coupon(vendor_id="v-2")) == "Coupon is not valid for this vendor"

    def test_inactive(self):
        assert _reason(_coupon(status="inactive")) == "Coupon is not active"

    def test_expired(self):
        assert _reason(_coupon(expiry_date=NOW - timedelta(minutes=1))) == "Coupon has expired"

    def test_naive_expiry_read_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert _reason(_coupon(expiry_date=naive)) == "Coupon has expired"

    def test_below_minimum(self):
        assert _reason(_coupon(), subtotal="99.99") == "Minimum order amount is 100.00"

    def test_usage_limit(self):
        assert _reason(_coupon(used_count=5)) == "Coupon usage limit reached"

    def test_no_limits(self):
        coupon = _coupon(expiry_date=None, min_order_amount=None, max_usage=None)
        assert check_coupon_eligibility(coupon, vendor_id="v-1", subtotal=D("1"), now=NOW).code == "SAVE10"


class TestCouponValidator:
    def test_code_is_normalized(self, gateway, validator):
        rule = validator.validate("v-1", "  save10 ", D("200"))
        assert rule.code == "SAVE10"
        assert gateway.calls[-1] == ("validate_coupon", ("v-1", "SAVE10", D("200.00")))

    def test_empty_code(self, validator, gateway):
        with pytest.raises(InvalidCouponError, match="required"):
            validator.validate("v-1", "   ", D("200"))
        assert gateway.calls == []

    def test_unknown_code(self, validator):
        with pytest.raises(InvalidCouponError, match="not found"):
            validator.validate("v-1", "NOPE", D("200"))

    def test_gateway_failure_becomes_invalid_coupon(self, validator, gateway):
        gateway.fail["validate_coupon"] = GatewayError("timeout")
        with pytest.raises(InvalidCouponError) as exc:
            validator.validate("v-1", "SAVE10", D("200"))
        assert exc.value.reason == "timeout"

    def test_normalize_code(self):
        assert normalize_code(" abc ") == "ABC"
        assert normalize_code(None) == ""
