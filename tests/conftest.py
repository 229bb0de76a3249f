from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from vendorpos.checkout import CheckoutOrchestrator
from vendorpos.coupons import CouponValidator
from vendorpos.domain import (
    Bill,
    BillItem,
    Booking,
    CartLine,
    CouponRule,
    CouponUsage,
    Customer,
    LedgerTransaction,
    Order,
    OrderItem,
    Payment,
)
from vendorpos.errors import InvalidCouponError

FIXED_NOW = datetime(2024, 3, 5, 10, 17, 42)


class FakeGateway:
    """In-memory PosGateway: records every call, can be told to fail some operations."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.fail: dict[str, Exception] = {}
        self.coupons: dict[str, CouponRule] = {}
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _record(self, op: str, *args) -> None:
        self.calls.append((op, args))
        if op in self.fail:
            raise self.fail[op]

    def payloads(self, op: str) -> list:
        return [args[-1] for name, args in self.calls if name == op]

    def ops(self) -> list[str]:
        return [name for name, _ in self.calls]

    def create_bill(self, vendor_id, payload):
        self._record("create_bill", vendor_id, payload)
        return Bill.from_payload(self._next("bill"), payload, FIXED_NOW)

    def add_bill_item(self, bill_id, payload):
        self._record("add_bill_item", bill_id, payload)
        return BillItem(
            id=self._next("bi"),
            bill_id=bill_id,
            item_type=payload.item_type,
            item_name=payload.item_name,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def record_payment(self, bill_id, payload):
        self._record("record_payment", bill_id, payload)
        return Payment(id=self._next("pay"), bill_id=bill_id, amount=payload.amount, payment_method=payload.payment_method)

    def create_order(self, vendor_id, payload):
        self._record("create_order", vendor_id, payload)
        return Order(
            id=self._next("order"),
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            status=payload.status,
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
        )

    def create_order_item(self, order_id, payload):
        self._record("create_order_item", order_id, payload)
        return OrderItem(
            id=self._next("oi"),
            order_id=order_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def create_booking(self, vendor_id, payload):
        self._record("create_booking", vendor_id, payload)
        return Booking(
            id=self._next("booking"),
            vendor_id=vendor_id,
            service_id=payload.service_id,
            status=payload.status,
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
            booking_date=payload.booking_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )

    def record_coupon_usage(self, payload):
        self._record("record_coupon_usage", payload)
        return CouponUsage(
            id=self._next("cu"),
            coupon_id=payload.coupon_id,
            customer_id=payload.customer_id,
            order_id=payload.order_id,
            discount_amount=payload.discount_amount,
        )

    def create_ledger_transaction(self, vendor_id, payload):
        self._record("create_ledger_transaction", vendor_id, payload)
        return LedgerTransaction(
            id=self._next("ledger"),
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            type=payload.type,
            amount=payload.amount,
            reference_type=payload.reference_type,
            reference_id=payload.reference_id,
            exclude_from_balance=payload.exclude_from_balance,
            created_at=FIXED_NOW,
        )

    def validate_coupon(self, vendor_id, code, subtotal):
        self._record("validate_coupon", vendor_id, code, subtotal)
        rule = self.coupons.get(code)
        if rule is None:
            raise InvalidCouponError("Coupon not found")
        return rule


@pytest.fixture
def gateway() -> FakeGateway:
    gw = FakeGateway()
    gw.coupons["SAVE10"] = CouponRule(id="c-1", code="SAVE10", vendor_id="v-1", kind="percentage", value=Decimal("10"))
    return gw


@pytest.fixture
def orchestrator(gateway) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(gateway, clock=lambda: FIXED_NOW)


@pytest.fixture
def validator(gateway) -> CouponValidator:
    return CouponValidator(gateway)


@pytest.fixture
def customer() -> Customer:
    return Customer(
        id="cust-1",
        name="Asha Rao",
        phone="+91 98765 43210",
        email="asha@example.com",
        address="12 MG Road",
        city="Pune",
        state="MH",
        pincode="411001",
    )


@pytest.fixture
def soap() -> CartLine:
    return CartLine(kind="product", item_id="p-1", name="Soap", unit_price=Decimal("100"), quantity=2)


@pytest.fixture
def haircut() -> CartLine:
    return CartLine(kind="service", item_id="s-1", name="Haircut", unit_price=Decimal("150"), duration_minutes=45)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW
