from __future__ import annotations

from psycopg import Connection

from ..domain import OrderItemPayload, OrderPayload


class OrderRepository:
    def create(self, conn: Connection, payload: OrderPayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO pos_order(
              vendor_id, customer_id, customer_name, customer_phone, customer_email,
              delivery_address, city, state, pincode, status, payment_status, payment_method,
              subtotal, delivery_charges, total_amount, notes, source
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                payload.vendor_id,
                payload.customer_id,
                payload.customer_name,
                payload.customer_phone,
                payload.customer_email,
                payload.delivery_address,
                payload.city,
                payload.state,
                payload.pincode,
                payload.status,
                payload.payment_status,
                payload.payment_method,
                payload.subtotal,
                payload.delivery_charges,
                payload.total_amount,
                payload.notes,
                payload.source,
            ),
        )
        return str(cur.fetchone()["id"])

    def add_item(self, conn: Connection, *, order_id: str, payload: OrderItemPayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO order_item(order_id, product_id, product_name, product_unit, quantity, price_per_unit, total_price)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                order_id,
                payload.product_id,
                payload.product_name,
                payload.product_unit,
                payload.quantity,
                payload.price_per_unit,
                payload.total_price,
            ),
        )
        return str(cur.fetchone()["id"])
