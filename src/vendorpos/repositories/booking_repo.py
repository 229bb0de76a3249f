from __future__ import annotations

from psycopg import Connection

from ..domain import BookingPayload


class BookingRepository:
    def create(self, conn: Connection, payload: BookingPayload) -> str:
        cur = conn.execute(
            """
            INSERT INTO booking(
              vendor_id, customer_id, service_id, service_name, customer_name, customer_phone,
              customer_email, booking_date, start_time, end_time, duration_minutes, status,
              payment_status, total_amount, notes, source
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                payload.vendor_id,
                payload.customer_id,
                payload.service_id,
                payload.service_name,
                payload.customer_name,
                payload.customer_phone,
                payload.customer_email,
                payload.booking_date,
                payload.start_time,
                payload.end_time,
                payload.duration_minutes,
                payload.status,
                payload.payment_status,
                payload.total_amount,
                payload.notes,
                payload.source,
            ),
        )
        return str(cur.fetchone()["id"])
