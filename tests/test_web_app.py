from unittest.mock import MagicMock

import pytest

from vendorpos.config import parse_config
from vendorpos.errors import GatewayError
from vendorpos.web_app import create_app


@pytest.fixture
def cfg():
    return parse_config({"api": {"base_url": "https://api.test"}, "business": {"vendor_id": "v-1", "business_name": "Asha Stores"}})


@pytest.fixture
def client(gateway, cfg):
    app = create_app(gateway, cfg)
    app.config["TESTING"] = True
    return app.test_client()


SOAP = {"kind": "product", "itemId": "p-1", "name": "Soap", "price": "100", "quantity": 2, "stock": 10}
HAIRCUT = {"kind": "service", "itemId": "s-1", "name": "Haircut", "price": "150", "durationMinutes": 45}
CUSTOMER = {"id": "cust-1", "name": "Asha Rao", "phone": "98765 43210"}


class TestPricing:
    def test_preview(self, client):
        resp = client.post(
            "/api/vendors/v-1/pricing",
            json={
                "lines": [SOAP],
                "discount": {"type": "coupon", "code": "save10"},
                "additionalServices": [{"name": "Gift wrap", "amount": "50"}],
            },
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["subtotal"] == "200.00"
        assert body["discountAmount"] == "20.00"
        assert body["grandTotal"] == "239.00"
        assert body["itemCount"] == 2

    def test_stock_exceeded(self, client):
        resp = client.post("/api/vendors/v-1/pricing", json={"lines": [dict(SOAP, quantity=11)]})
        assert resp.status_code == 400
        assert "Only 10 available" in resp.get_json()["message"]

    def test_unknown_discount_type(self, client):
        resp = client.post("/api/vendors/v-1/pricing", json={"lines": [SOAP], "discount": {"type": "bogo"}})
        assert resp.status_code == 400


class TestCouponValidation:
    def test_valid(self, client):
        resp = client.get("/api/coupons/validate/SAVE10?vendorId=v-1&subtotal=200")
        assert resp.status_code == 200
        assert resp.get_json()["discountValue"] == "10.00"

    def test_invalid(self, client):
        resp = client.get("/api/coupons/validate/NOPE?vendorId=v-1&subtotal=200")
        assert resp.status_code == 400
        assert resp.get_json() == {"message": "Coupon not found"}

    def test_vendor_required(self, client):
        assert client.get("/api/coupons/validate/SAVE10").status_code == 400


class TestCheckout:
    def test_partial_payment(self, client, gateway):
        resp = client.post(
            "/api/vendors/v-1/pos/checkout",
            json={
                "lines": [SOAP, HAIRCUT],
                "customer": CUSTOMER,
                "payment": {"type": "partial", "amount": "100", "method": "upi"},
            },
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["bill"]["totalAmount"] == "350.00"
        assert body["bill"]["dueAmount"] == "250.00"
        assert body["bill"]["paymentStatus"] == "partial"
        assert body["orderId"]
        assert len(body["bookingIds"]) == 1
        assert body["failures"] == []
        assert "Asha Stores" in body["invoiceText"]
        assert body["shareUrl"].startswith("https://wa.me/9876543210?text=")
        assert [e.type for e in gateway.payloads("create_ledger_transaction")] == ["in", "out"]

    def test_walk_in(self, client, gateway):
        resp = client.post("/api/vendors/v-1/pos/checkout", json={"lines": [SOAP], "customer": {"id": "walk-in"}})
        assert resp.status_code == 201
        assert "Walk-in Customer" in resp.get_json()["invoiceText"]
        assert "create_ledger_transaction" not in gateway.ops()

    def test_step_failures_are_reported(self, client, gateway):
        gateway.fail["create_booking"] = GatewayError("slot taken")
        resp = client.post("/api/vendors/v-1/pos/checkout", json={"lines": [HAIRCUT]})
        assert resp.status_code == 201
        assert resp.get_json()["failures"] == [{"step": "create_booking", "error": "slot taken"}]

    def test_bill_failure(self, client, gateway):
        gateway.fail["create_bill"] = GatewayError("down")
        resp = client.post("/api/vendors/v-1/pos/checkout", json={"lines": [SOAP]})
        assert resp.status_code == 502
        assert gateway.ops() == ["create_bill"]

    def test_empty_cart(self, client, gateway):
        resp = client.post("/api/vendors/v-1/pos/checkout", json={"lines": []})
        assert resp.status_code == 400
        assert gateway.calls == []


class TestLedgerBalance:
    def test_needs_database(self, client):
        assert client.get("/api/customers/cust-1/ledger-balance?vendorId=v-1").status_code == 503

    def test_balance(self, gateway, cfg):
        conn = MagicMock()
        conn.execute.return_value.fetchall.return_value = [
            {"type": "in", "amount": "100", "exclude_from_balance": True},
            {"type": "out", "amount": "139", "exclude_from_balance": False},
        ]
        db = MagicMock()
        db.session.return_value.__enter__.return_value = conn
        client = create_app(gateway, cfg, db).test_client()

        body = client.get("/api/customers/cust-1/ledger-balance?vendorId=v-1").get_json()
        assert body == {"total_given": "139.00", "total_received": "100.00", "balance": "139.00"}


class TestMalformedInput:
    @pytest.mark.parametrize(
        "body",
        [
            {"lines": [dict(SOAP, stock="plenty")]},
            {"lines": [dict(HAIRCUT, durationMinutes="long")]},
            {"lines": [dict(SOAP, quantity="two")]},
            {"lines": [SOAP], "discount": "SAVE10"},
            {"lines": [SOAP], "additionalServices": 5},
            {"lines": [SOAP], "customer": "cust-1"},
            {"lines": "soap"},
            ["not", "an", "object"],
        ],
    )
    def test_bad_pricing_input_is_a_400(self, client, body):
        resp = client.post("/api/vendors/v-1/pricing", json=body)
        assert resp.status_code == 400
        assert resp.get_json()["message"]

    def test_bad_payment_is_a_400(self, client, gateway):
        resp = client.post("/api/vendors/v-1/pos/checkout", json={"lines": [SOAP], "payment": "cash"})
        assert resp.status_code == 400
        assert gateway.calls == []
