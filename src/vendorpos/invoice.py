from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

from .domain import CheckoutOutcome, Customer

RULE = "━━━━━━━━━━━━━━━━"


def render_invoice_text(
    outcome: CheckoutOutcome,
    *,
    business_name: str,
    customer: Optional[Customer] = None,
    walk_in_label: str = "Walk-in Customer",
    currency: str = "₹",
) -> str:
    bill = outcome.bill
    pricing = outcome.pricing

    def amt(value) -> str:
        return f"{currency}{value:.2f}"

    lines = [
        "🧾 *INVOICE*",
        RULE,
        f"*{business_name}*",
        "",
        f"📋 Bill: {bill.bill_number}",
        f"📅 Date: {bill.bill_date:%d/%m/%Y}",
        f"👤 Customer: {customer.name if customer else walk_in_label}",
        "",
        "*ITEMS*",
    ]
    lines += [f"▫️ {ln.name} x{ln.quantity} = {amt(ln.line_total)}" for ln in outcome.lines]

    if bill.additional_charges:
        lines += ["", "*Additional Services*"]
        lines += [f"▫️ {s.name} = {amt(s.total_amount)}" for s in bill.additional_charges]

    lines += [RULE, f"Subtotal: {amt(pricing.subtotal)}"]
    if pricing.discount_amount > 0:
        lines.append(f"Discount: -{amt(pricing.discount_amount)}")
    if pricing.additional_services_total > 0:
        lines.append(f"Additional: {amt(pricing.additional_services_total)}")
    lines += [f"*TOTAL: {amt(bill.total_amount)}*", f"Paid: {amt(bill.paid_amount)}"]
    if bill.due_amount > 0:
        lines.append(f"*Due: {amt(bill.due_amount)}*")
    lines += ["", RULE, "Thank you for your business! 🙏"]
    return "\n".join(lines)


def whatsapp_share_url(text: str, phone: Optional[str] = None) -> str:
    digits = re.sub(r"\D", "", phone or "")
    return f"https://wa.me/{digits}?text={quote(text)}"
