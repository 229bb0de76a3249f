from __future__ import annotations

from psycopg import Connection

from ..domain import CouponUsagePayload


class CouponRepository:
    def get_by_code(self, conn: Connection, *, vendor_id: str, code: str) -> dict | None:
        """The vendor's own coupon for `code`, else another vendor's so the caller can say why it is refused."""
        cur = conn.execute(
            """
            SELECT id, vendor_id, code, discount_type, discount_value, min_order_amount,
                   expiry_date, max_usage, used_count, status
            FROM coupon
            WHERE code = %s
            ORDER BY (vendor_id = %s) DESC
            LIMIT 1;
            """,
            (code, vendor_id),
        )
        return cur.fetchone()

    def record_usage(self, conn: Connection, payload: CouponUsagePayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO coupon_usage(coupon_id, customer_id, order_id, discount_amount)
            VALUES (%s, %s, %s, %s)
            RETURNING id;
            """,
            (payload.coupon_id, payload.customer_id, payload.order_id, payload.discount_amount),
        )
        usage_id = str(cur.fetchone()["id"])
        conn.execute(
            "UPDATE coupon SET used_count = used_count + 1 WHERE id = %s;",
            (payload.coupon_id,),
        )
        return usage_id
