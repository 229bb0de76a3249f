from __future__ import annotations

from datetime import datetime, timedelta

from .checkout import CheckoutOrchestrator
from .config import AppConfig
from .coupons import CouponValidator
from .db import Db
from .domain import CartLine, Customer
from .errors import CheckoutFailedError, InvalidCouponError, PosError, StockExceededError, ValidationError
from .gateway import PosGateway
from .importers import ImportError, import_customers_csv, import_products_json
from .invoice import render_invoice_text
from .reports import customer_ledger_summary, sales_report, top_items
from .repositories.customer_repo import CustomerRepository
from .repositories.product_repo import ProductRepository
from .session import CheckoutSession


def _prompt(msg: str) -> str:
    return input(msg).strip()


def line_from_product(row: dict) -> CartLine:
    return CartLine(
        kind=row["kind"],
        item_id=str(row["id"]),
        name=row["name"],
        unit_price=row["price"],
        quantity=1,
        unit=row["unit"] or "pcs",
        source_id=str(row["id"]),
        duration_minutes=(row.get("duration_minutes") if row["kind"] == "service" else None),
    )


def customer_from_row(row: dict) -> Customer:
    return Customer(
        id=str(row["id"]),
        name=row["name"],
        phone=row.get("phone"),
        email=row.get("email"),
        address=row.get("address"),
        city=row.get("city"),
        state=row.get("state"),
        pincode=row.get("pincode"),
    )


def _print_cart(session: CheckoutSession, currency: str) -> None:
    if session.cart.is_empty:
        print("Cart is empty.")
        return
    for ln in session.cart.lines:
        print(f"  [{ln.item_id}] {ln.name} {currency}{ln.unit_price} x {ln.quantity} {ln.unit} = {currency}{ln.line_total}")
    for s in session.additional_services:
        print(f"  + {s.name} {currency}{s.base_amount} + GST {currency}{s.tax_amount} = {currency}{s.total_amount}")
    p = session.pricing
    print(f"Subtotal: {currency}{p.subtotal}  Discount: -{currency}{p.discount_amount}  "
          f"Additional: {currency}{p.additional_services_total}")
    print(f"TOTAL: {currency}{p.grand_total}  ({p.item_count} items)")
    who = session.customer.name if session.customer else "walk-in"
    print(f"Customer: {who}")


def run_cli(db: Db, gateway: PosGateway, cfg: AppConfig, orchestrator: CheckoutOrchestrator) -> None:
    vendor_id = cfg.business.vendor_id
    currency = cfg.business.currency_symbol
    customer_repo = CustomerRepository()
    product_repo = ProductRepository()
    session = CheckoutSession(vendor_id, CouponValidator(gateway))

    while True:
        print(f"\n=== {cfg.business.business_name} POS ===")
        print("1) List products & services")
        print("2) Add item to cart")
        print("3) Show cart")
        print("4) Change quantity (+ / - / x)")
        print("5) Choose customer")
        print("6) Apply coupon")
        print("7) Manual discount")
        print("8) Add additional service (+18% GST)")
        print("9) Checkout")
        print("10) New sale (clear)")
        print("11) Customer ledger balance")
        print("12) Sales report (last 30 days)")
        print("13) Import customers CSV / products JSON")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                search = _prompt("search (optional): ")
                with db.session() as conn:
                    rows = product_repo.list(conn, vendor_id=vendor_id, search=search, limit=50)
                for r in rows:
                    stock = "" if r["kind"] == "service" else f' stock={r["stock"]}'
                    print(f'[{r["id"]}] {r["kind"]:7} {r["name"]} {currency}{r["price"]}/{r["unit"]}{stock}')

            elif choice == "2":
                product_id = _prompt("product id: ")
                with db.session() as conn:
                    row = product_repo.get(conn, vendor_id=vendor_id, product_id=product_id)
                if row is None:
                    print("Unknown product.")
                    continue
                line = session.cart.add(line_from_product(row), stock=row["stock"])
                print(f"Added {line.name} (qty {line.quantity})")

            elif choice == "3":
                _print_cart(session, currency)

            elif choice == "4":
                item_id = _prompt("item id: ")
                op = _prompt("+ / - / x: ")
                if op == "+":
                    session.cart.increment(item_id)
                elif op == "-":
                    session.cart.decrement(item_id)
                elif op == "x":
                    session.cart.remove(item_id)
                _print_cart(session, currency)

            elif choice == "5":
                with db.session() as conn:
                    rows = customer_repo.list(conn, vendor_id=vendor_id, limit=50)
                for r in rows:
                    print(f'[{r["id"]}] {r["name"]} {r["phone"] or ""}')
                customer_id = _prompt("customer id (blank = walk-in): ")
                if not customer_id:
                    session.set_customer(None)
                    continue
                with db.session() as conn:
                    row = customer_repo.get(conn, vendor_id=vendor_id, customer_id=customer_id)
                if row is None:
                    print("Unknown customer.")
                    continue
                session.set_customer(customer_from_row(row))

            elif choice == "6":
                discount = session.apply_coupon(_prompt("coupon code: "))
                suffix = "%" if discount.kind == "percentage" else f" {currency}"
                print(f"Coupon applied: {discount.code} - {discount.value}{suffix} off")

            elif choice == "7":
                kind = _prompt("percentage / fixed / none: ").lower()
                if kind == "none":
                    session.clear_discount()
                else:
                    session.set_manual_discount(kind, _prompt("value: "))
                _print_cart(session, currency)

            elif choice == "8":
                name = _prompt("service name: ")
                desc = _prompt("description (optional): ") or None
                service = session.add_additional_service(name, _prompt("amount (before GST): "), desc)
                print(f"Added {service.name}: {currency}{service.total_amount} incl. GST")

            elif choice == "9":
                session.begin_checkout()
                _print_cart(session, currency)
                session.configure()
                notes = _prompt("notes (optional): ")
                session.notes = notes or None
                plan_type = _prompt("payment full / partial / credit: ").lower() or "full"
                amount = _prompt("amount paid now: ") if plan_type == "partial" else None
                method = None
                if plan_type != "credit":
                    method = _prompt("method (cash/card/upi): ") or "cash"
                session.select_payment(plan_type, amount, method)
                try:
                    outcome = session.submit(orchestrator)
                except CheckoutFailedError as e:
                    print(f"[CHECKOUT FAILED] {e}. Cart kept, try again.")
                    continue
                print()
                print(
                    render_invoice_text(
                        outcome,
                        business_name=cfg.business.business_name,
                        customer=session.customer,
                        walk_in_label=cfg.business.walk_in_label,
                        currency=currency,
                    )
                )
                for f in outcome.failures:
                    print(f"[WARNING] {f.step} not recorded: {f.error}")
                session.reset()

            elif choice == "10":
                session.reset()
                print("Cart cleared.")

            elif choice == "11":
                customer_id = _prompt("customer id: ")
                with db.session() as conn:
                    summary = customer_ledger_summary(conn, vendor_id=vendor_id, customer_id=customer_id)
                print(f"Given {currency}{summary['total_given']}  Received {currency}{summary['total_received']}  "
                      f"Balance {currency}{summary['balance']}")

            elif choice == "12":
                d2 = datetime.now()
                d1 = d2 - timedelta(days=30)
                with db.session() as conn:
                    rep = sales_report(conn, vendor_id=vendor_id, date_from=d1, date_to=d2)
                    best = top_items(conn, vendor_id=vendor_id, limit=5)
                print(f"Bills: {rep['bills_count']} ({rep['credit_bills']} on credit)")
                print(f"Billed {currency}{rep['billed']}  Collected {currency}{rep['collected']}  "
                      f"Outstanding {currency}{rep['outstanding']}  Discounts {currency}{rep['discounts']}")
                for row in best:
                    print(f"  {row['item_name']} ({row['item_type']}): {row['total_qty']} sold, {currency}{row['total_value']}")

            elif choice == "13":
                mode = _prompt("customers / products: ").lower()
                path = _prompt("path: ")
                with db.transaction() as conn:
                    if mode == "customers":
                        result = import_customers_csv(conn, path, vendor_id, customer_repo)
                    else:
                        result = import_products_json(conn, path, vendor_id, product_repo)
                print(f"Imported: {result.imported}")
                for reason in result.rejected:
                    print(f"  skipped {reason}")

            else:
                print("Unknown choice.")

        except StockExceededError as e:
            print(f"[STOCK] {e}")
        except InvalidCouponError as e:
            print(f"[INVALID COUPON] {e}")
        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")
        except ImportError as e:
            print(f"[IMPORT ERROR] {e}")
        except PosError as e:
            print(f"[ERROR] {e}")
        except Exception as e:
            print(f"[ERROR] {type(e).__name__}: {e}")
