from decimal import Decimal
from urllib.parse import unquote

from vendorpos.checkout import CheckoutRequest
from vendorpos.domain import ManualDiscount
from vendorpos.invoice import render_invoice_text, whatsapp_share_url
from vendorpos.pricing import make_additional_service

D = Decimal


def test_partial_invoice(orchestrator, soap, customer):
    outcome = orchestrator.checkout(
        CheckoutRequest(
            vendor_id="v-1",
            lines=(soap,),
            discount=ManualDiscount(kind="fixed", value="20"),
            additional_services=(make_additional_service("Gift wrap", "50"),),
            payment_type="partial",
            amount=D("100"),
            customer=customer,
        )
    )
    text = render_invoice_text(outcome, business_name="Asha Stores", customer=customer)

    assert text.startswith("🧾 *INVOICE*")
    assert "*Asha Stores*" in text
    assert f"Bill: {outcome.bill.bill_number}" in text
    assert "Date: 05/03/2024" in text
    assert "Customer: Asha Rao" in text
    assert "Soap x2 = ₹200.00" in text
    assert "Gift wrap = ₹59.00" in text
    assert "Discount: -₹20.00" in text
    assert "*TOTAL: ₹239.00*" in text
    assert "Paid: ₹100.00" in text
    assert "*Due: ₹139.00*" in text


def test_paid_walk_in_invoice(orchestrator, soap):
    outcome = orchestrator.checkout(CheckoutRequest(vendor_id="v-1", lines=(soap,)))
    text = render_invoice_text(outcome, business_name="Shop", currency="Rs ")
    assert "Customer: Walk-in Customer" in text
    assert "Discount" not in text
    assert "Due" not in text
    assert "*TOTAL: Rs 200.00*" in text


def test_share_url():
    url = whatsapp_share_url("Total: ₹10 & thanks", "+91 98765-43210")
    assert url.startswith("https://wa.me/919876543210?text=")
    assert unquote(url.split("text=", 1)[1]) == "Total: ₹10 & thanks"


def test_share_url_without_phone():
    assert whatsapp_share_url("hi").startswith("https://wa.me/?text=")
