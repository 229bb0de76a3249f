"""PosGateway over the vendor REST API."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime, time
from decimal import Decimal
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import requests

from .config import ApiConfig
from .domain import (
    Bill,
    BillItem,
    BillItemPayload,
    BillPayload,
    Booking,
    BookingPayload,
    CouponRule,
    CouponUsage,
    CouponUsagePayload,
    LedgerTransaction,
    LedgerTransactionPayload,
    Order,
    OrderItem,
    OrderItemPayload,
    OrderPayload,
    Payment,
    PaymentPayload,
    money,
)
from .errors import GatewayError, GatewayTimeoutError, InvalidCouponError, ValidationError

DEFAULT_TIMEOUT = 15.0


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_api(value: Any) -> Any:
    """Payload dataclasses to the camelCase JSON the API speaks; money as 2-dp strings."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {camel(f.name): to_api(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (list, tuple)):
        return [to_api(v) for v in value]
    if isinstance(value, dict):
        return {k: to_api(v) for k, v in value.items()}
    return value


def _parse_datetime(raw: Optional[str]) -> Optional[datetime]:
    """ISO 8601 or HTTP-date; anything else is treated as absent."""
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        pass
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None


class HttpGateway:
    def __init__(self, cfg: ApiConfig, session: requests.Session | None = None) -> None:
        self.base_url = cfg.base_url.rstrip("/")
        self.timeout = cfg.timeout_seconds or DEFAULT_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if cfg.token:
            self.session.headers["Authorization"] = f"Bearer {cfg.token}"

    def _request(self, method: str, path: str, *, json: Any = None, params: dict | None = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise GatewayTimeoutError(f"{method} {path} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise GatewayError(f"{method} {path} failed: {e}") from e
        return response

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text or response.reason or "request failed"

    def _call(self, method: str, path: str, *, json: Any = None, params: dict | None = None) -> dict:
        response = self._request(method, path, json=json, params=params)
        if not response.ok:
            raise GatewayError(f"{response.status_code}: {self._error_text(response)}")
        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(data, dict) or "id" not in data:
            raise GatewayError(f"{method} {path} returned no record id")
        return data

    def create_bill(self, vendor_id: str, payload: BillPayload) -> Bill:
        data = self._call("POST", f"/api/vendors/{vendor_id}/bills", json=to_api(payload))
        return Bill.from_payload(
            str(data["id"]),
            payload,
            _parse_datetime(data.get("billDate")) or datetime.now(),
        )

    def add_bill_item(self, bill_id: str, payload: BillItemPayload) -> BillItem:
        data = self._call("POST", f"/api/bills/{bill_id}/items", json=to_api(payload))
        return BillItem(
            id=str(data["id"]),
            bill_id=bill_id,
            item_type=payload.item_type,
            item_name=payload.item_name,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def record_payment(self, bill_id: str, payload: PaymentPayload) -> Payment:
        data = self._call("POST", f"/api/bills/{bill_id}/payments", json=to_api(payload))
        return Payment(id=str(data["id"]), bill_id=bill_id, amount=payload.amount, payment_method=payload.payment_method)

    def create_order(self, vendor_id: str, payload: OrderPayload) -> Order:
        data = self._call("POST", f"/api/vendors/{vendor_id}/orders", json=to_api(payload))
        return Order(
            id=str(data["id"]),
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            status=data.get("status", payload.status),
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
        )

    def create_order_item(self, order_id: str, payload: OrderItemPayload) -> OrderItem:
        body = to_api(payload)
        body["orderId"] = order_id
        data = self._call("POST", f"/api/orders/{order_id}/items", json=body)
        return OrderItem(
            id=str(data["id"]),
            order_id=order_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            total_price=payload.total_price,
        )

    def create_booking(self, vendor_id: str, payload: BookingPayload) -> Booking:
        data = self._call("POST", f"/api/vendors/{vendor_id}/bookings", json=to_api(payload))
        return Booking(
            id=str(data["id"]),
            vendor_id=vendor_id,
            service_id=payload.service_id,
            status=data.get("status", payload.status),
            payment_status=payload.payment_status,
            total_amount=payload.total_amount,
            booking_date=payload.booking_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )

    def record_coupon_usage(self, payload: CouponUsagePayload) -> CouponUsage:
        data = self._call("POST", "/api/coupon-usages", json=to_api(payload))
        return CouponUsage(
            id=str(data["id"]),
            coupon_id=payload.coupon_id,
            customer_id=payload.customer_id,
            order_id=payload.order_id,
            discount_amount=payload.discount_amount,
        )

    def create_ledger_transaction(self, vendor_id: str, payload: LedgerTransactionPayload) -> LedgerTransaction:
        data = self._call("POST", f"/api/vendors/{vendor_id}/ledger-transactions", json=to_api(payload))
        return LedgerTransaction(
            id=str(data["id"]),
            vendor_id=vendor_id,
            customer_id=payload.customer_id,
            type=payload.type,
            amount=payload.amount,
            reference_type=payload.reference_type,
            reference_id=payload.reference_id,
            exclude_from_balance=payload.exclude_from_balance,
            created_at=_parse_datetime(data.get("createdAt")),
        )

    def validate_coupon(self, vendor_id: str, code: str, subtotal: Decimal) -> CouponRule:
        params = {"vendorId": vendor_id, "subtotal": f"{money(subtotal):.2f}"}
        response = self._request("GET", f"/api/coupons/validate/{code}", params=params)
        if 400 <= response.status_code < 500:
            raise InvalidCouponError(self._error_text(response))
        if not response.ok:
            raise GatewayError(f"{response.status_code}: {self._error_text(response)}")
        try:
            data = response.json()
            return CouponRule(
                id=str(data["id"]),
                code=data["code"],
                vendor_id=str(data.get("vendorId", vendor_id)),
                kind=data["discountType"],
                value=data["discountValue"],
            )
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise GatewayError(f"Unexpected coupon response: {e}") from e
