"""Point-of-sale checkout.

Turns a priced cart into a bill plus the order, bookings, items, payment,
coupon usage and ledger entries that hang off it. The bill is the only
critical write: if it fails nothing else is attempted. Every write after it
is best-effort and a failure is logged and reported on the outcome without
stopping the remaining steps or undoing the bill.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import structlog

from .domain import (
    ZERO,
    AdditionalService,
    Bill,
    BillItem,
    BillItemPayload,
    BillPayload,
    Booking,
    BookingPayload,
    CartLine,
    CheckoutOutcome,
    CouponDiscount,
    CouponUsage,
    CouponUsagePayload,
    Customer,
    DiscountSpec,
    LedgerTransaction,
    LedgerTransactionPayload,
    ManualDiscount,
    NoDiscount,
    Order,
    OrderItem,
    OrderItemPayload,
    OrderPayload,
    Payment,
    PaymentPayload,
    PaymentStatus,
    PaymentType,
    PricingResult,
    StepFailure,
    money,
)
from .errors import CheckoutFailedError, ValidationError
from .gateway import PosGateway
from .payments import classify_payment, resolve_tendered
from .pricing import compute_pricing

logger = structlog.get_logger()


@dataclass(frozen=True)
class CheckoutSettings:
    walk_in_label: str = "Walk-in Customer"
    default_service_duration_minutes: int = 30
    default_payment_method: str = "cash"


@dataclass(frozen=True)
class CheckoutRequest:
    vendor_id: str
    lines: tuple[CartLine, ...]
    discount: DiscountSpec = NoDiscount()
    additional_services: tuple[AdditionalService, ...] = ()
    payment_type: PaymentType = "full"
    amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    customer: Optional[Customer] = None
    notes: Optional[str] = None

    @property
    def is_walk_in(self) -> bool:
        return self.customer is None


@dataclass
class _Run:
    request: CheckoutRequest
    pricing: PricingResult
    tendered: Decimal
    payment_status: PaymentStatus
    method: Optional[str]
    now: datetime
    bill: Optional[Bill] = None
    order: Optional[Order] = None
    bookings: list[Booking] = field(default_factory=list)
    bill_items: list[BillItem] = field(default_factory=list)
    order_items: list[OrderItem] = field(default_factory=list)
    payment: Optional[Payment] = None
    coupon_usage: Optional[CouponUsage] = None
    ledger_entries: list[LedgerTransaction] = field(default_factory=list)
    failures: list[StepFailure] = field(default_factory=list)

    @property
    def due(self) -> Decimal:
        return self.pricing.grand_total - self.tendered

    @property
    def items_summary(self) -> str:
        return ", ".join(f"{ln.quantity}x {ln.name}" for ln in self.request.lines)


class CheckoutOrchestrator:
    TAIL_STEPS = (
        "create_order",
        "create_bookings",
        "attach_items",
        "record_payment",
        "record_coupon_usage",
        "record_ledger",
    )

    def __init__(
        self,
        gateway: PosGateway,
        settings: CheckoutSettings | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or CheckoutSettings()
        self.clock = clock

    def checkout(self, request: CheckoutRequest) -> CheckoutOutcome:
        run = self._prepare(request)
        log = logger.bind(vendor_id=request.vendor_id)

        run.bill = self._create_bill(run, log)
        log = log.bind(bill_id=run.bill.id, bill_number=run.bill.bill_number)

        for step in self.TAIL_STEPS:
            try:
                getattr(self, f"_{step}")(run, log)
            except Exception as e:
                # payload construction errors land here
                log.error("checkout_step_failed", step=step, error=str(e), error_type=type(e).__name__)
                run.failures.append(StepFailure(step=step, error=str(e)))

        if run.failures:
            log.warning("checkout_completed_with_failures", failed_steps=[f.step for f in run.failures])
        else:
            log.info("checkout_completed", total=str(run.pricing.grand_total), payment_status=run.payment_status)

        return CheckoutOutcome(
            bill=run.bill,
            pricing=run.pricing,
            lines=request.lines,
            order=run.order,
            bookings=tuple(run.bookings),
            bill_items=tuple(run.bill_items),
            order_items=tuple(run.order_items),
            payment=run.payment,
            coupon_usage=run.coupon_usage,
            ledger_entries=tuple(run.ledger_entries),
            failures=tuple(run.failures),
        )

    # ---- step 1: validate and price, no writes -------------------------

    def _prepare(self, request: CheckoutRequest) -> _Run:
        if not request.lines:
            raise ValidationError("Cart is empty.")
        pricing = compute_pricing(request.lines, request.discount, request.additional_services)
        if pricing.grand_total <= 0:
            raise ValidationError("Invalid total amount.")

        tendered = resolve_tendered(request.payment_type, pricing.grand_total, request.amount)
        method = None
        if request.payment_type != "credit":
            method = (request.payment_method or "").strip() or self.settings.default_payment_method

        return _Run(
            request=request,
            pricing=pricing,
            tendered=tendered,
            payment_status=classify_payment(tendered, pricing.grand_total),
            method=method,
            now=self.clock(),
        )

    # ---- step 2: the bill ----------------------------------------------

    def _create_bill(self, run: _Run, log) -> Bill:
        req = run.request
        discount = req.discount
        if isinstance(discount, CouponDiscount):
            discount_type = "coupon"
        elif isinstance(discount, ManualDiscount) and run.pricing.discount_amount > 0:
            discount_type = discount.kind
        else:
            discount_type = None

        payload = BillPayload(
            vendor_id=req.vendor_id,
            bill_number=f"BILL-{int(run.now.timestamp() * 1000)}",
            customer_id=(req.customer.id if req.customer else None),
            subtotal=run.pricing.subtotal,
            discount_amount=run.pricing.discount_amount,
            discount_type=discount_type,
            coupon_id=(discount.coupon_id if isinstance(discount, CouponDiscount) else None),
            coupon_code=(discount.code if isinstance(discount, CouponDiscount) else None),
            additional_charges=tuple(req.additional_services),
            total_amount=run.pricing.grand_total,
            paid_amount=run.tendered,
            due_amount=run.due,
            payment_status=run.payment_status,
            payment_method=run.method,
            notes=(req.notes or None),
        )

        try:
            bill = self.gateway.create_bill(req.vendor_id, payload)
        except Exception as e:
            log.error("bill_create_failed", bill_number=payload.bill_number, error=str(e), error_type=type(e).__name__)
            raise CheckoutFailedError(f"Failed to create bill: {e}") from e

        log.info("bill_created", bill_id=bill.id, bill_number=bill.bill_number, total=str(bill.total_amount))
        return bill

    # ---- steps 3-8: best effort ----------------------------------------

    def _attempt(self, run: _Run, step: str, log, fn: Callable, *args, **context):
        try:
            return fn(*args)
        except Exception as e:
            log.error("checkout_step_failed", step=step, error=str(e), error_type=type(e).__name__, **context)
            run.failures.append(StepFailure(step=step, error=str(e)))
            return None

    def _customer_fields(self, customer: Optional[Customer]) -> dict:
        return {
            "customer_id": customer.id if customer else None,
            "customer_name": customer.name if customer else self.settings.walk_in_label,
            "customer_phone": (customer.phone if customer else None) or "",
            "customer_email": customer.email if customer else None,
        }

    def _create_order(self, run: _Run, log) -> None:
        products = [ln for ln in run.request.lines if ln.kind == "product"]
        if not products:
            return
        customer = run.request.customer
        product_total = money(sum((ln.line_total for ln in products), ZERO))
        payload = OrderPayload(
            vendor_id=run.request.vendor_id,
            **self._customer_fields(customer),
            delivery_address=(customer.address if customer else None) or "Counter Sale",
            city=(customer.city if customer else None) or "N/A",
            state=(customer.state if customer else None) or "N/A",
            pincode=(customer.pincode if customer else None) or "000000",
            payment_status=run.payment_status,
            payment_method=run.method or "cod",
            subtotal=product_total,
            total_amount=product_total,
            notes=f"POS Sale - {run.request.notes or 'Counter purchase'}",
        )
        run.order = self._attempt(run, "create_order", log, self.gateway.create_order, run.request.vendor_id, payload)
        if run.order is not None:
            log.info("order_created", order_id=run.order.id)

    def _create_bookings(self, run: _Run, log) -> None:
        start = run.now.replace(second=0, microsecond=0)
        for line in run.request.lines:
            if line.kind != "service":
                continue
            duration = line.duration_minutes or self.settings.default_service_duration_minutes
            payload = BookingPayload(
                vendor_id=run.request.vendor_id,
                **self._customer_fields(run.request.customer),
                service_id=line.source_id,
                service_name=line.name,
                booking_date=start.date(),
                start_time=start.time(),
                end_time=(start + timedelta(minutes=duration)).time(),
                duration_minutes=duration,
                payment_status=run.payment_status,
                total_amount=line.line_total,
                notes=f"POS Sale - Bill {run.bill.bill_number}",
            )
            booking = self._attempt(
                run, "create_booking", log, self.gateway.create_booking, run.request.vendor_id, payload,
                service_id=line.source_id,
            )
            if booking is not None:
                run.bookings.append(booking)
                log.info("booking_created", booking_id=booking.id, service_id=line.source_id)

    def _attach_items(self, run: _Run, log) -> None:
        for line in run.request.lines:
            item = BillItemPayload(
                item_type=line.kind,
                item_name=line.name,
                quantity=line.quantity,
                unit=line.unit or "pcs",
                unit_price=line.unit_price,
                total_price=line.line_total,
                product_id=(line.source_id if line.kind == "product" else None),
                service_id=(line.source_id if line.kind == "service" else None),
            )
            bill_item = self._attempt(
                run, "add_bill_item", log, self.gateway.add_bill_item, run.bill.id, item, item_id=line.item_id
            )
            if bill_item is not None:
                run.bill_items.append(bill_item)

            if run.order is None or line.kind != "product":
                continue
            order_item = OrderItemPayload(
                product_id=line.source_id,
                product_name=line.name,
                product_unit=line.unit or "pcs",
                quantity=line.quantity,
                price_per_unit=line.unit_price,
                total_price=line.line_total,
            )
            created = self._attempt(
                run, "create_order_item", log, self.gateway.create_order_item, run.order.id, order_item,
                item_id=line.item_id,
            )
            if created is not None:
                run.order_items.append(created)

    def _record_payment(self, run: _Run, log) -> None:
        if run.tendered <= 0:
            return
        payload = PaymentPayload(amount=run.tendered, payment_method=run.method)
        run.payment = self._attempt(run, "record_payment", log, self.gateway.record_payment, run.bill.id, payload)
        if run.payment is not None:
            log.info("payment_recorded", payment_id=run.payment.id, amount=str(run.tendered))

    def _record_coupon_usage(self, run: _Run, log) -> None:
        discount = run.request.discount
        if not isinstance(discount, CouponDiscount) or run.request.is_walk_in:
            return
        payload = CouponUsagePayload(
            coupon_id=discount.coupon_id,
            customer_id=run.request.customer.id,
            order_id=(run.order.id if run.order else None),
            discount_amount=run.pricing.discount_amount,
        )
        run.coupon_usage = self._attempt(run, "record_coupon_usage", log, self.gateway.record_coupon_usage, payload)

    def _record_ledger(self, run: _Run, log) -> None:
        # walk-in sales have no ledger identity
        if run.request.is_walk_in:
            return
        vendor_id = run.request.vendor_id
        customer_id = run.request.customer.id
        reference_type = "order" if run.order else "bill"
        reference_id = run.order.id if run.order else run.bill.id
        bill_number = run.bill.bill_number

        entries = []
        if run.tendered > 0:
            entries.append(
                LedgerTransactionPayload(
                    vendor_id=vendor_id,
                    customer_id=customer_id,
                    type="in",
                    amount=run.tendered,
                    category="product_sale",
                    payment_method=run.method or self.settings.default_payment_method,
                    description=f"POS Sale - Bill {bill_number}",
                    note=run.items_summary,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    exclude_from_balance=True,
                )
            )
        if run.due > 0:
            entries.append(
                LedgerTransactionPayload(
                    vendor_id=vendor_id,
                    customer_id=customer_id,
                    type="out",
                    amount=run.due,
                    category="product_sale",
                    payment_method="credit",
                    description=f"Credit Due - Bill {bill_number}",
                    note=f"Pending payment: {run.due} ({run.items_summary})",
                    reference_type=reference_type,
                    reference_id=reference_id,
                    exclude_from_balance=False,
                )
            )

        for payload in entries:
            entry = self._attempt(
                run, f"ledger_{payload.type}", log, self.gateway.create_ledger_transaction, vendor_id, payload,
                customer_id=customer_id,
            )
            if entry is not None:
                run.ledger_entries.append(entry)
                log.info("ledger_recorded", direction=payload.type, amount=str(payload.amount))
