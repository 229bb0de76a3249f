from __future__ import annotations

from psycopg import Connection

from ..domain import LedgerTransactionPayload


class LedgerRepository:
    def create(self, conn: Connection, payload: LedgerTransactionPayload) -> dict:
        cur = conn.execute(
            """
            INSERT INTO ledger_transaction(
              vendor_id, customer_id, type, amount, category, payment_method, description, note,
              reference_type, reference_id, exclude_from_balance, is_pos_sale
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
            """,
            (
                payload.vendor_id,
                payload.customer_id,
                payload.type,
                payload.amount,
                payload.category,
                payload.payment_method,
                payload.description,
                payload.note,
                payload.reference_type,
                payload.reference_id,
                payload.exclude_from_balance,
                payload.is_pos_sale,
            ),
        )
        return cur.fetchone()

    def list_for_customer(self, conn: Connection, *, vendor_id: str, customer_id: str) -> list[dict]:
        cur = conn.execute(
            """
            SELECT id, type, amount, category, description, exclude_from_balance, created_at
            FROM ledger_transaction
            WHERE vendor_id = %s AND customer_id = %s
            ORDER BY created_at;
            """,
            (vendor_id, customer_id),
        )
        return cur.fetchall()
