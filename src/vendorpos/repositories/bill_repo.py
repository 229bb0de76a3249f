from __future__ import annotations

import dataclasses

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..domain import BillItemPayload, BillPayload, PaymentPayload


def _charges_json(payload: BillPayload) -> Jsonb:
    return Jsonb(
        [
            {k: (str(v) if not isinstance(v, (str, type(None))) else v) for k, v in dataclasses.asdict(s).items()}
            for s in payload.additional_charges
        ]
    )


class BillRepository:
    def create(self, conn: Connection, payload: BillPayload) -> dict:
        cur = conn.execute(
            """
            INSERT INTO bill(
              bill_number, vendor_id, customer_id, subtotal, discount_amount, discount_type,
              coupon_id, coupon_code, additional_charges, total_amount, paid_amount, due_amount,
              status, payment_status, payment_method, notes
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, bill_date;
            """,
            (
                payload.bill_number,
                payload.vendor_id,
                payload.customer_id,
                payload.subtotal,
                payload.discount_amount,
                payload.discount_type,
                payload.coupon_id,
                payload.coupon_code,
                _charges_json(payload),
                payload.total_amount,
                payload.paid_amount,
                payload.due_amount,
                payload.status,
                payload.payment_status,
                payload.payment_method,
                payload.notes,
            ),
        )
        return cur.fetchone()

    def add_item(self, conn: Connection, *, bill_id: str, payload: BillItemPayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO bill_item(bill_id, item_type, product_id, service_id, item_name, quantity, unit, unit_price, total_price)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                bill_id,
                payload.item_type,
                payload.product_id,
                payload.service_id,
                payload.item_name,
                payload.quantity,
                payload.unit,
                payload.unit_price,
                payload.total_price,
            ),
        )
        return str(cur.fetchone()["id"])

    def add_payment(self, conn: Connection, *, bill_id: str, payload: PaymentPayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO bill_payment(bill_id, amount, payment_method)
            VALUES (%s, %s, %s)
            RETURNING id;
            """,
            (bill_id, payload.amount, payload.payment_method),
        )
        return str(cur.fetchone()["id"])
