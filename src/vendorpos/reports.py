from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from psycopg import Connection

from .domain import ZERO, money
from .repositories.ledger_repo import LedgerRepository


def summarize_ledger(rows: Iterable[dict]) -> dict:
    """Given/received totals and the net balance a customer owes.

    POS payments are stored with exclude_from_balance set: that money was
    exchanged for goods and is not credit, so only the due ("out") side of a
    POS sale moves the balance. A positive balance means the customer owes
    the vendor.
    """
    total_given = total_received = ZERO
    balance_out = balance_in = ZERO
    for row in rows:
        amount = money(row["amount"])
        if row["type"] == "out":
            total_given += amount
            if not row.get("exclude_from_balance"):
                balance_out += amount
        else:
            total_received += amount
            if not row.get("exclude_from_balance"):
                balance_in += amount
    return {
        "total_given": total_given,
        "total_received": total_received,
        "balance": balance_out - balance_in,
    }


def customer_ledger_summary(
    conn: Connection,
    *,
    vendor_id: str,
    customer_id: str,
    ledger_repo: LedgerRepository | None = None,
) -> dict:
    repo = ledger_repo or LedgerRepository()
    return summarize_ledger(repo.list_for_customer(conn, vendor_id=vendor_id, customer_id=customer_id))


def sales_report(conn: Connection, *, vendor_id: str, date_from: datetime, date_to: datetime) -> dict:
    cur = conn.execute(
        """
        SELECT
          COUNT(*) AS bills_count,
          COALESCE(SUM(b.total_amount), 0) AS billed,
          COALESCE(SUM(b.paid_amount), 0) AS collected,
          COALESCE(SUM(b.due_amount), 0) AS outstanding,
          COALESCE(SUM(b.discount_amount), 0) AS discounts,
          COUNT(*) FILTER (WHERE b.payment_status = 'credit') AS credit_bills
        FROM bill b
        WHERE b.vendor_id = %s AND b.bill_date >= %s AND b.bill_date < %s;
        """,
        (vendor_id, date_from, date_to),
    )
    row = cur.fetchone()
    return {k: (money(v) if isinstance(v, Decimal) else v) for k, v in row.items()}


def top_items(conn: Connection, *, vendor_id: str, limit: int = 10) -> list[dict]:
    cur = conn.execute(
        """
        SELECT
          bi.item_type,
          bi.item_name,
          SUM(bi.quantity) AS total_qty,
          SUM(bi.total_price) AS total_value
        FROM bill_item bi
        JOIN bill b ON b.id = bi.bill_id
        WHERE b.vendor_id = %s
        GROUP BY bi.item_type, bi.item_name
        ORDER BY total_qty DESC
        LIMIT %s;
        """,
        (vendor_id, limit),
    )
    return cur.fetchall()
