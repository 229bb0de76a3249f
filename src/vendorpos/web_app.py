from __future__ import annotations

from typing import Optional

import structlog
from flask import Flask, jsonify, request

from .checkout import CheckoutOrchestrator, CheckoutSettings
from .config import AppConfig
from .coupons import CouponValidator
from .db import Db, DbError
from .domain import CartLine, Customer, parse_amount
from .errors import (
    CheckoutFailedError,
    InvalidCouponError,
    PosError,
    SessionStateError,
    ValidationError,
)
from .gateway import PosGateway
from .http_gateway import to_api
from .invoice import render_invoice_text, whatsapp_share_url
from .reports import customer_ledger_summary
from .session import CheckoutSession

logger = structlog.get_logger()


def _whole_number(raw, label: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{label} must be a whole number.") from e


def _parse_line(obj: dict) -> tuple[CartLine, Optional[int]]:
    if not isinstance(obj, dict):
        raise ValidationError("Each cart line must be an object.")
    kind = obj.get("kind") or obj.get("type") or "product"
    item_id = str(obj.get("itemId") or obj.get("id") or "")
    source_id = obj.get("sourceId") or obj.get("productId") or obj.get("serviceId")
    duration = obj.get("durationMinutes") or obj.get("duration")
    stock = obj.get("stock")
    quantity = _whole_number(obj.get("quantity", 1), "Quantity")
    line = CartLine(
        kind=kind,
        item_id=item_id,
        name=str(obj.get("name", "")),
        unit_price=parse_amount(obj.get("unitPrice", obj.get("price"))),
        quantity=quantity,
        unit=str(obj.get("unit") or "pcs"),
        source_id=(str(source_id) if source_id else None),
        duration_minutes=(_whole_number(duration, "Duration") if duration and kind == "service" else None),
    )
    return line, (_whole_number(stock, "Stock") if stock is not None else None)


def _parse_customer(obj: Optional[dict]) -> Optional[Customer]:
    if obj and not isinstance(obj, dict):
        raise ValidationError("customer must be an object.")
    if not obj or not obj.get("id") or obj.get("id") == "walk-in":
        return None
    return Customer(
        id=str(obj["id"]),
        name=str(obj.get("name") or ""),
        phone=obj.get("phone"),
        email=obj.get("email"),
        address=obj.get("address"),
        city=obj.get("city"),
        state=obj.get("state"),
        pincode=obj.get("pincode"),
    )


def _json_body() -> dict:
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.")
    return body


def _build_session(vendor_id: str, body: dict, validator: CouponValidator) -> CheckoutSession:
    session = CheckoutSession(vendor_id, validator)
    lines = body.get("lines") or []
    if not isinstance(lines, list):
        raise ValidationError("lines must be a list.")
    for obj in lines:
        line, stock = _parse_line(obj)
        session.cart.add(line, stock=stock)

    discount = body.get("discount") or {}
    if not isinstance(discount, dict):
        raise ValidationError("discount must be an object.")
    kind = discount.get("type", "none")
    if kind == "coupon" or discount.get("code"):
        session.apply_coupon(str(discount.get("code", "")))
    elif kind in ("percentage", "fixed"):
        session.set_manual_discount(kind, discount.get("value"))
    elif kind != "none":
        raise ValidationError(f"Unknown discount type: {kind}")

    services = body.get("additionalServices") or []
    if not isinstance(services, list):
        raise ValidationError("additionalServices must be a list.")
    for svc in services:
        if not isinstance(svc, dict):
            raise ValidationError("Each additional service must be an object.")
        session.add_additional_service(str(svc.get("name", "")), svc.get("amount"), svc.get("description"))

    session.set_customer(_parse_customer(body.get("customer")))
    session.notes = body.get("notes") or None
    return session


def create_app(gateway: PosGateway, cfg: AppConfig, db: Optional[Db] = None) -> Flask:
    app = Flask(__name__)
    validator = CouponValidator(gateway)
    orchestrator = CheckoutOrchestrator(
        gateway,
        CheckoutSettings(
            walk_in_label=cfg.business.walk_in_label,
            default_service_duration_minutes=cfg.business.default_service_duration_minutes,
        ),
    )

    @app.errorhandler(ValidationError)
    def on_validation_error(e):
        return jsonify(message=str(e)), 400

    @app.errorhandler(InvalidCouponError)
    def on_invalid_coupon(e):
        return jsonify(message=e.reason), 400

    @app.errorhandler(SessionStateError)
    def on_session_state(e):
        return jsonify(message=str(e)), 409

    @app.errorhandler(CheckoutFailedError)
    def on_checkout_failed(e):
        return jsonify(message=str(e)), 502

    @app.errorhandler(PosError)
    def on_pos_error(e):
        return jsonify(message=str(e)), 500

    @app.route("/api/vendors/<vendor_id>/pricing", methods=["POST"])
    def pricing_preview(vendor_id):
        body = _json_body()
        session = _build_session(vendor_id, body, validator)
        return jsonify(to_api(session.pricing))

    @app.route("/api/coupons/validate/<code>")
    def validate_coupon(code):
        vendor_id = request.args.get("vendorId", "")
        if not vendor_id:
            raise ValidationError("vendorId is required")
        rule = validator.validate(vendor_id, code, parse_amount(request.args.get("subtotal")))
        return jsonify(
            id=rule.id,
            code=rule.code,
            vendorId=rule.vendor_id,
            discountType=rule.kind,
            discountValue=to_api(rule.value),
        )

    @app.route("/api/vendors/<vendor_id>/pos/checkout", methods=["POST"])
    def pos_checkout(vendor_id):
        body = _json_body()
        session = _build_session(vendor_id, body, validator)
        session.begin_checkout()
        session.configure()
        payment = body.get("payment") or {}
        if not isinstance(payment, dict):
            raise ValidationError("payment must be an object.")
        session.select_payment(payment.get("type", "full"), payment.get("amount"), payment.get("method"))
        outcome = session.submit(orchestrator)

        text = render_invoice_text(
            outcome,
            business_name=cfg.business.business_name,
            customer=session.customer,
            walk_in_label=cfg.business.walk_in_label,
            currency=cfg.business.currency_symbol,
        )
        phone = session.customer.phone if session.customer else None
        return (
            jsonify(
                bill=to_api(outcome.bill),
                orderId=(outcome.order.id if outcome.order else None),
                bookingIds=[b.id for b in outcome.bookings],
                failures=to_api(list(outcome.failures)),
                invoiceText=text,
                shareUrl=whatsapp_share_url(text, phone),
            ),
            201,
        )

    @app.route("/api/customers/<customer_id>/ledger-balance")
    def ledger_balance(customer_id):
        if db is None:
            return jsonify(message="Ledger reports need a database connection."), 503
        vendor_id = request.args.get("vendorId", "") or cfg.business.vendor_id
        try:
            with db.session() as conn:
                summary = customer_ledger_summary(conn, vendor_id=vendor_id, customer_id=customer_id)
        except DbError as e:
            logger.error("ledger_balance_failed", customer_id=customer_id, error=str(e))
            return jsonify(message=str(e)), 503
        return jsonify(to_api(summary))

    return app
