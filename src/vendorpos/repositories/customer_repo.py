from __future__ import annotations

from psycopg import Connection


class CustomerRepository:
    def create(
        self,
        conn: Connection,
        *,
        vendor_id: str,
        name: str,
        phone: str | None,
        email: str | None,
        address: str | None = None,
        city: str | None = None,
        state: str | None = None,
        pincode: str | None = None,
    ) -> str:
        cur = conn.execute(
            """
            INSERT INTO customer(vendor_id, name, phone, email, address, city, state, pincode)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (vendor_id, name, phone, email, address, city, state, pincode),
        )
        return str(cur.fetchone()["id"])

    def get(self, conn: Connection, *, vendor_id: str, customer_id: str) -> dict | None:
        cur = conn.execute(
            """
            SELECT id, name, phone, email, address, city, state, pincode
            FROM customer
            WHERE vendor_id = %s AND id = %s;
            """,
            (vendor_id, customer_id),
        )
        return cur.fetchone()

    def list(self, conn: Connection, *, vendor_id: str, limit: int = 50) -> list[dict]:
        cur = conn.execute(
            """
            SELECT id, name, phone, email, created_at
            FROM customer
            WHERE vendor_id = %s
            ORDER BY name
            LIMIT %s;
            """,
            (vendor_id, limit),
        )
        return cur.fetchall()
