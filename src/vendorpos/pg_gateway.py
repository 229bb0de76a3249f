"""PosGateway backed by PostgreSQL.

Each operation commits on its own, so a checkout that fails half-way leaves
the bill and whatever followed it in place, the same as against the remote API.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator

import psycopg
from psycopg import Connection

from .coupons import check_coupon_eligibility
from .db import Db, DbError
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
from .errors import GatewayError
from .repositories.bill_repo import BillRepository
from .repositories.booking_repo import BookingRepository
from .repositories.coupon_repo import CouponRepository
from .repositories.ledger_repo import LedgerRepository
from .repositories.order_repo import OrderRepository


class PgGateway:
    def __init__(
        self,
        db: Db,
        *,
        bill_repo: BillRepository | None = None,
        order_repo: OrderRepository | None = None,
        booking_repo: BookingRepository | None = None,
        coupon_repo: CouponRepository | None = None,
        ledger_repo: LedgerRepository | None = None,
    ) -> None:
        self.db = db
        self.bill_repo = bill_repo or BillRepository()
        self.order_repo = order_repo or OrderRepository()
        self.booking_repo = booking_repo or BookingRepository()
        self.coupon_repo = coupon_repo or CouponRepository()
        self.ledger_repo = ledger_repo or LedgerRepository()

    @contextmanager
    def _tx(self, what: str) -> Iterator[Connection]:
        try:
            with self.db.transaction() as conn:
                yield conn
        except (psycopg.Error, DbError) as e:
            raise GatewayError(f"{what} failed: {e}") from e

    def create_bill(self, vendor_id: str, payload: BillPayload) -> Bill:
        with self._tx("create bill") as conn:
            row = self.bill_repo.create(conn, payload)
        return Bill.from_payload(str(row["id"]), payload, row["bill_date"])

    def add_bill_item(self, bill_id: str, payload: BillItemPayload) -> BillItem:
        with self._tx("add bill item") as conn:
            item_id = self.bill_repo.add_item(conn, bill_id=bill_id, payload=payload)
        return BillItem(
            id=item_id,
            bill_id=bill_id,
            item_type=payload.item_type,
            item_name=payload.item_name,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def record_payment(self, bill_id: str, payload: PaymentPayload) -> Payment:
        with self._tx("record payment") as conn:
            payment_id = self.bill_repo.add_payment(conn, bill_id=bill_id, payload=payload)
        return Payment(id=payment_id, bill_id=bill_id, amount=payload.amount, payment_method=payload.payment_method)

    def create_order(self, vendor_id: str, payload: OrderPayload) -> Order:
        with self._tx("create order") as conn:
            order_id = self.order_repo.create(conn, payload)
        return Order(
            id=order_id,
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            status=payload.status,
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
        )

    def create_order_item(self, order_id: str, payload: OrderItemPayload) -> OrderItem:
        with self._tx("create order item") as conn:
            item_id = self.order_repo.add_item(conn, order_id=order_id, payload=payload)
        return OrderItem(
            id=item_id,
            order_id=order_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def create_booking(self, vendor_id: str, payload: BookingPayload) -> Booking:
        with self._tx("create booking") as conn:
            booking_id = self.booking_repo.create(conn, payload)
        return Booking(
            id=booking_id,
            vendor_id=vendor_id,
            service_id=payload.service_id,
            status=payload.status,
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
            booking_date=payload.booking_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )

    def record_coupon_usage(self, payload: CouponUsagePayload) -> CouponUsage:
        with self._tx("record coupon usage") as conn:
            usage_id = self.coupon_repo.record_usage(conn, payload)
        return CouponUsage(
            id=usage_id,
            coupon_id=payload.coupon_id,
            customer_id=payload.customer_id,
            order_id=payload.order_id,
            discount_amount=payload.discount_amount,
        )

    def create_ledger_transaction(self, vendor_id: str, payload: LedgerTransactionPayload) -> LedgerTransaction:
        with self._tx("create ledger transaction") as conn:
            row = self.ledger_repo.create(conn, payload)
        return LedgerTransaction(
            id=str(row["id"]),
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            type=payload.type,
            amount=payload.amount,
            reference_type=payload.reference_type,
            reference_id=payload.reference_id,
            exclude_from_balance=payload.exclude_from_balance,
            created_at=row["created_at"],
        )

    def validate_coupon(self, vendor_id: str, code: str, subtotal: Decimal) -> CouponRule:
        with self._tx("validate coupon") as conn:
            coupon = self.coupon_repo.get_by_code(conn, vendor_id=vendor_id, code=code)
        return check_coupon_eligibility(coupon, vendor_id=vendor_id, subtotal=subtotal)
