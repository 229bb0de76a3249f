from __future__ import annotations

from decimal import Decimal

from psycopg import Connection


class ProductRepository:
    def upsert_by_sku(
        self,
        conn: Connection,
        *,
        vendor_id: str,
        sku: str,
        name: str,
        kind: str,
        price: Decimal,
        unit: str,
        stock: int | None,
        duration_minutes: int | None = None,
        is_active: bool = True,
    ) -> str:
        cur = conn.execute(
            """
            INSERT INTO product(vendor_id, sku, name, kind, price, unit, stock, duration_minutes, is_active)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (vendor_id, sku) DO UPDATE SET
              name = EXCLUDED.name,
              kind = EXCLUDED.kind,
              price = EXCLUDED.price,
              unit = EXCLUDED.unit,
              stock = EXCLUDED.stock,
              duration_minutes = EXCLUDED.duration_minutes,
              is_active = EXCLUDED.is_active
            RETURNING id;
            """,
            (vendor_id, sku, name, kind, price, unit, stock, duration_minutes, is_active),
        )
        return str(cur.fetchone()["id"])

    def get(self, conn: Connection, *, vendor_id: str, product_id: str) -> dict | None:
        cur = conn.execute(
            """
            SELECT id, sku, name, kind, price, unit, stock, duration_minutes
            FROM product
            WHERE vendor_id = %s AND id = %s AND is_active;
            """,
            (vendor_id, product_id),
        )
        return cur.fetchone()

    def list(self, conn: Connection, *, vendor_id: str, search: str = "", limit: int = 50) -> list[dict]:
        cur = conn.execute(
            """
            SELECT id, sku, name, kind, price, unit, stock, duration_minutes
            FROM product
            WHERE vendor_id = %s AND is_active AND name ILIKE %s
            ORDER BY kind, name
            LIMIT %s;
            """,
            (vendor_id, f"%{search}%", limit),
        )
        return cur.fetchall()
