"""Bulk loading of a vendor's customers (CSV) and catalog (JSON)."""

from __future__ import annotations

import csv
import json
import re
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from psycopg import Connection

from .domain import LINE_KINDS, parse_amount
from .repositories.customer_repo import CustomerRepository
from .repositories.product_repo import ProductRepository

logger = structlog.get_logger()

CUSTOMER_COLUMNS = ("name", "phone", "email")


class ImportError(Exception):
    pass


@dataclass
class ImportSummary:
    imported: int = 0
    rejected: list[str] = field(default_factory=list)

    def reject(self, where: str, reason: str) -> None:
        self.rejected.append(f"{where}: {reason}")


def _source(path: str | Path) -> Path:
    source = Path(path)
    if not source.is_file():
        raise ImportError(f"File not found: {source}")
    return source


def _clean(value) -> str | None:
    text = (value or "").strip()
    return text or None


def import_customers_csv(
    conn: Connection, path: str | Path, vendor_id: str, customer_repo: CustomerRepository
) -> ImportSummary:
    summary = ImportSummary()
    with _source(path).open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in CUSTOMER_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ImportError(f"CSV is missing columns: {', '.join(missing)}")

        # header is line 1
        for lineno, row in enumerate(reader, start=2):
            name = _clean(row.get("name"))
            if name is None:
                summary.reject(f"line {lineno}", "no name")
                continue
            phone = _clean(row.get("phone"))
            if phone is not None and len(re.sub(r"\D", "", phone)) < 10:
                summary.reject(f"line {lineno}", f"phone {phone!r} is too short")
                continue
            customer_repo.create(
                conn,
                vendor_id=vendor_id,
                name=name,
                phone=phone,
                email=_clean(row.get("email")),
                address=_clean(row.get("address")),
                city=_clean(row.get("city")),
                state=_clean(row.get("state")),
                pincode=_clean(row.get("pincode")),
            )
            summary.imported += 1

    logger.info("customers_imported", vendor_id=vendor_id, imported=summary.imported, rejected=len(summary.rejected))
    return summary


def import_products_json(
    conn: Connection, path: str | Path, vendor_id: str, product_repo: ProductRepository
) -> ImportSummary:
    """Upsert catalog entries by SKU.

    Products may carry `stock`, services may carry `duration_minutes`; the other
    field is ignored for each kind. Entries without a SKU or name are rejected
    and reported, an unknown kind aborts the whole file.
    """
    with _source(path).open("r", encoding="utf-8") as f:
        try:
            entries = json.load(f)
        except json.JSONDecodeError as e:
            raise ImportError(f"Invalid JSON: {e}") from e
    if not isinstance(entries, list):
        raise ImportError("Catalog file must hold a JSON array")

    summary = ImportSummary()
    for index, entry in enumerate(entries):
        where = f"entry {index}"
        if not isinstance(entry, dict):
            summary.reject(where, "not an object")
            continue
        sku = str(entry.get("sku") or "").strip()
        name = str(entry.get("name") or "").strip()
        if not sku or not name:
            summary.reject(where, "sku and name are required")
            continue
        kind = entry.get("kind", "product")
        if kind not in LINE_KINDS:
            raise ImportError(f"Unknown kind {kind!r} for SKU {sku}")

        stock = entry.get("stock") if kind == "product" else None
        duration = entry.get("duration_minutes") if kind == "service" else None
        product_repo.upsert_by_sku(
            conn,
            vendor_id=vendor_id,
            sku=sku,
            name=name,
            kind=kind,
            price=parse_amount(entry.get("price")),
            unit=str(entry.get("unit") or "pcs"),
            stock=(int(stock) if stock is not None else None),
            duration_minutes=(int(duration) if duration else None),
            is_active=bool(entry.get("is_active", True)),
        )
        summary.imported += 1

    logger.info("catalog_imported", vendor_id=vendor_id, imported=summary.imported, rejected=len(summary.rejected))
    return summary
