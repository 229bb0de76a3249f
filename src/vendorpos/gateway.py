"""Operations the checkout consumes from the billing, order, booking and ledger services."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from .domain import (
    Bill,
    BillItem,
    BillItemPayload,
    BillPayload,
    Booking,
    BookingPayload,
    CouponRule,
    CouponUsage,
    CouponUsagePayload,
    LedgerTransaction,
    LedgerTransactionPayload,
    Order,
    OrderItem,
    OrderItemPayload,
    OrderPayload,
    Payment,
    PaymentPayload,
)


class PosGateway(Protocol):
    def create_bill(self, vendor_id: str, payload: BillPayload) -> Bill: ...

    def add_bill_item(self, bill_id: str, payload: BillItemPayload) -> BillItem: ...

    def record_payment(self, bill_id: str, payload: PaymentPayload) -> Payment: ...

    def create_order(self, vendor_id: str, payload: OrderPayload) -> Order: ...

    def create_order_item(self, order_id: str, payload: OrderItemPayload) -> OrderItem: ...

    def create_booking(self, vendor_id: str, payload: BookingPayload) -> Booking: ...

    def record_coupon_usage(self, payload: CouponUsagePayload) -> CouponUsage: ...

    def create_ledger_transaction(self, vendor_id: str, payload: LedgerTransactionPayload) -> LedgerTransaction: ...

    def validate_coupon(self, vendor_id: str, code: str, subtotal: Decimal) -> CouponRule: ...
