from datetime import date, datetime, time, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from vendorpos.config import ApiConfig
from vendorpos.domain import BillPayload, BookingPayload, LedgerTransactionPayload, OrderItemPayload, PaymentPayload
from vendorpos.errors import GatewayError, GatewayTimeoutError, InvalidCouponError
from vendorpos.http_gateway import HttpGateway, camel, to_api

D = Decimal


def _response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.text = text
    resp.reason = "Error"
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    gw = HttpGateway(ApiConfig(base_url="https://api.test/", token="tok", timeout_seconds=5), session=session)
    return gw, session


def _ledger_payload():
    return LedgerTransactionPayload(
        vendor_id="v-1",
        customer_id="cust-1",
        type="out",
        amount=D("139"),
        category="product_sale",
        payment_method="credit",
        description="Credit Due - Bill BILL-1",
        note="Pending payment: 139.00 (2x Soap)",
        reference_type="order",
        reference_id="order-1",
        exclude_from_balance=False,
    )


class TestToApi:
    def test_camel(self):
        assert camel("exclude_from_balance") == "excludeFromBalance"
        assert camel("id") == "id"

    def test_payload_shape(self):
        body = to_api(_ledger_payload())
        assert body["customerId"] == "cust-1"
        assert body["amount"] == "139.00"
        assert body["excludeFromBalance"] is False
        assert body["isPosSale"] is True

    def test_booking_dates_and_times(self):
        payload = BookingPayload(
            vendor_id="v-1",
            customer_id=None,
            service_id="s-1",
            service_name="Haircut",
            customer_name="Walk-in Customer",
            customer_phone="",
            customer_email=None,
            booking_date=date(2024, 3, 5),
            start_time=time(10, 17),
            end_time=time(11, 2),
            duration_minutes=45,
            payment_status="paid",
            total_amount=D("150"),
        )
        body = to_api(payload)
        assert body["bookingDate"] == "2024-03-05"
        assert body["startTime"] == "10:17"
        assert body["endTime"] == "11:02"
        assert body["totalAmount"] == "150.00"


class TestHttpGateway:
    def test_auth_header(self, http):
        _, session = http
        assert session.headers["Authorization"] == "Bearer tok"

    def test_ledger_post(self, http):
        gw, session = http
        session.request.return_value = _response(201, {"id": 42, "createdAt": "2024-03-05T10:17:00Z"})

        entry = gw.create_ledger_transaction("v-1", _ledger_payload())

        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://api.test/api/vendors/v-1/ledger-transactions")
        assert session.request.call_args.kwargs["timeout"] == 5
        assert entry.id == "42"
        assert entry.created_at.year == 2024

    def test_order_item_carries_order_id(self, http):
        gw, session = http
        session.request.return_value = _response(201, {"id": "oi-1"})
        gw.create_order_item(
            "order-9",
            OrderItemPayload(
                product_id="p-1", product_name="Soap", product_unit="pcs",
                quantity=2, price_per_unit=D("100"), total_price=D("200"),
            ),
        )
        assert session.request.call_args.kwargs["json"]["orderId"] == "order-9"

    def test_error_message_from_body(self, http):
        gw, session = http
        session.request.return_value = _response(422, {"message": "amount invalid"})
        with pytest.raises(GatewayError, match="422: amount invalid"):
            gw.record_payment("bill-1", PaymentPayload(amount=D("10"), payment_method="cash"))

    def test_missing_id_is_an_error(self, http):
        gw, session = http
        session.request.return_value = _response(200, {"ok": True})
        with pytest.raises(GatewayError, match="no record id"):
            gw.record_payment("bill-1", PaymentPayload(amount=D("10"), payment_method="cash"))

    def test_timeout(self, http):
        gw, session = http
        session.request.side_effect = requests.Timeout()
        with pytest.raises(GatewayTimeoutError):
            gw.record_payment("bill-1", PaymentPayload(amount=D("10"), payment_method="cash"))

    def test_connection_error(self, http):
        gw, session = http
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(GatewayError, match="refused"):
            gw.record_payment("bill-1", PaymentPayload(amount=D("10"), payment_method="cash"))

    def test_coupon_rejected(self, http):
        gw, session = http
        session.request.return_value = _response(400, {"message": "Coupon has expired"})
        with pytest.raises(InvalidCouponError) as exc:
            gw.validate_coupon("v-1", "OLD", D("200"))
        assert exc.value.reason == "Coupon has expired"
        assert session.request.call_args.kwargs["params"] == {"vendorId": "v-1", "subtotal": "200.00"}

    def test_coupon_accepted(self, http):
        gw, session = http
        session.request.return_value = _response(
            200,
            {"id": "c-1", "code": "SAVE10", "vendorId": "v-1", "discountType": "percentage", "discountValue": "10"},
        )
        rule = gw.validate_coupon("v-1", "SAVE10", D("200"))
        assert rule.kind == "percentage"
        assert rule.value == D("10.00")

    def test_coupon_server_error(self, http):
        gw, session = http
        session.request.return_value = _response(503, text="maintenance")
        with pytest.raises(GatewayError, match="503: maintenance"):
            gw.validate_coupon("v-1", "SAVE10", D("200"))


def _bill_payload():
    return BillPayload(
        vendor_id="v-1",
        bill_number="BILL-1",
        customer_id=None,
        subtotal=D("200"),
        discount_amount=D("0"),
        discount_type=None,
        coupon_id=None,
        coupon_code=None,
        additional_charges=(),
        total_amount=D("200"),
        paid_amount=D("200"),
        due_amount=D("0"),
        payment_status="paid",
        payment_method="cash",
    )


class TestBillDate:
    def test_http_date(self, http):
        gw, session = http
        session.request.return_value = _response(201, {"id": "b-1", "billDate": "Tue, 05 Mar 2024 10:00:00 GMT"})
        bill = gw.create_bill("v-1", _bill_payload())
        assert bill.bill_date == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)

    def test_iso_date(self, http):
        gw, session = http
        session.request.return_value = _response(201, {"id": "b-1", "billDate": "2024-03-05T10:00:00Z"})
        bill = gw.create_bill("v-1", _bill_payload())
        assert bill.bill_date == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)

    def test_unreadable_date_does_not_lose_the_bill(self, http):
        gw, session = http
        session.request.return_value = _response(201, {"id": "b-1", "billDate": "soon"})
        bill = gw.create_bill("v-1", _bill_payload())
        assert bill.id == "b-1"
        assert isinstance(bill.bill_date, datetime)
