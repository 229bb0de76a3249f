from __future__ import annotations

import enum
from decimal import Decimal
from typing import Optional

import structlog

from .cart import Cart
from .checkout import CheckoutOrchestrator, CheckoutRequest
from .coupons import CouponValidator
from .domain import (
    AdditionalService,
    Bill,
    CheckoutOutcome,
    CouponDiscount,
    Customer,
    DiscountKind,
    DiscountSpec,
    ManualDiscount,
    NoDiscount,
    PaymentPlan,
    PaymentType,
    PricingResult,
)
from .errors import CheckoutFailedError, SessionStateError, ValidationError
from .payments import resolve_tendered
from .pricing import compute_pricing, make_additional_service

logger = structlog.get_logger()


class SessionState(enum.Enum):
    BUILDING = "building"
    REVIEWING = "reviewing"
    CONFIGURING = "configuring"
    PAYMENT_SELECTION = "payment_selection"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


_LOCKED = (SessionState.SUBMITTING, SessionState.COMPLETED)


class CheckoutSession:
    """Everything one cashier interaction owns: cart, discount, extra services, payment choice."""

    def __init__(self, vendor_id: str, validator: Optional[CouponValidator] = None) -> None:
        self.vendor_id = vendor_id
        self.validator = validator
        self.cart = Cart()
        self.discount: DiscountSpec = NoDiscount()
        self.additional_services: list[AdditionalService] = []
        self.customer: Optional[Customer] = None
        self.notes: Optional[str] = None
        self.payment_plan: Optional[PaymentPlan] = None
        self.state = SessionState.BUILDING
        self.outcome: Optional[CheckoutOutcome] = None
        self.last_error: Optional[str] = None

    @property
    def pricing(self) -> PricingResult:
        return compute_pricing(self.cart.lines, self.discount, self.additional_services)

    def _ensure_editable(self) -> None:
        if self.state in _LOCKED:
            raise SessionStateError(f"Session is {self.state.value}; start a new sale first.")

    # ---- state transitions ---------------------------------------------

    def begin_checkout(self) -> None:
        self._ensure_editable()
        if self.cart.is_empty:
            raise ValidationError("Cart is empty.")
        self.state = SessionState.REVIEWING

    def configure(self) -> None:
        if self.state not in (SessionState.REVIEWING, SessionState.PAYMENT_SELECTION):
            raise SessionStateError("Review the cart before adding discounts or services.")
        self.state = SessionState.CONFIGURING

    def select_payment(self, plan_type: PaymentType, amount=None, method: Optional[str] = None) -> PaymentPlan:
        if self.state not in (SessionState.REVIEWING, SessionState.CONFIGURING, SessionState.FAILED):
            raise SessionStateError("Payment is chosen after reviewing the cart.")
        tendered = resolve_tendered(plan_type, self.pricing.grand_total, amount)
        self.payment_plan = PaymentPlan(type=plan_type, tendered_amount=tendered, method=method)
        self.state = SessionState.PAYMENT_SELECTION
        return self.payment_plan

    def cancel(self) -> None:
        self._ensure_editable()
        self.payment_plan = None
        self.state = SessionState.BUILDING

    def submit(self, orchestrator: CheckoutOrchestrator) -> CheckoutOutcome:
        if self.state is not SessionState.PAYMENT_SELECTION or self.payment_plan is None:
            raise SessionStateError("Choose a payment option before submitting.")

        plan = self.payment_plan
        request = CheckoutRequest(
            vendor_id=self.vendor_id,
            lines=tuple(self.cart.lines),
            discount=self.discount,
            additional_services=tuple(self.additional_services),
            payment_type=plan.type,
            amount=(plan.tendered_amount if plan.type == "partial" else None),
            payment_method=plan.method,
            customer=self.customer,
            notes=self.notes,
        )

        self.state = SessionState.SUBMITTING
        try:
            self.outcome = orchestrator.checkout(request)
        except CheckoutFailedError as e:
            self.state = SessionState.FAILED
            self.last_error = str(e)
            raise
        except ValidationError:
            self.state = SessionState.PAYMENT_SELECTION
            raise
        except Exception as e:
            self.state = SessionState.FAILED
            self.last_error = str(e)
            logger.error("checkout_submit_failed", vendor_id=self.vendor_id, error=str(e), error_type=type(e).__name__)
            raise

        self.state = SessionState.COMPLETED
        self.last_error = None
        return self.outcome

    def get_completed_bill(self) -> Bill:
        if self.outcome is None:
            raise SessionStateError("No completed bill in this session.")
        return self.outcome.bill

    def reset(self) -> None:
        if self.state is SessionState.SUBMITTING:
            raise SessionStateError("Checkout is being submitted.")
        self.cart.clear()
        self.discount = NoDiscount()
        self.additional_services = []
        self.customer = None
        self.notes = None
        self.payment_plan = None
        self.outcome = None
        self.last_error = None
        self.state = SessionState.BUILDING

    # ---- configuration -------------------------------------------------

    def set_customer(self, customer: Optional[Customer]) -> None:
        self._ensure_editable()
        self.customer = customer

    def apply_coupon(self, code: str) -> CouponDiscount:
        self._ensure_editable()
        if self.validator is None:
            raise SessionStateError("Coupons are not available in this session.")
        rule = self.validator.validate(self.vendor_id, code, self.pricing.subtotal)
        self.discount = rule.as_discount()
        logger.info("coupon_applied", vendor_id=self.vendor_id, code=rule.code)
        return self.discount

    def remove_coupon(self) -> None:
        self._ensure_editable()
        if isinstance(self.discount, CouponDiscount):
            self.discount = NoDiscount()

    def set_manual_discount(self, kind: DiscountKind, value) -> ManualDiscount:
        self._ensure_editable()
        self.discount = ManualDiscount(kind=kind, value=value)
        return self.discount

    def clear_discount(self) -> None:
        self._ensure_editable()
        self.discount = NoDiscount()

    def add_additional_service(self, name: str, amount, description: Optional[str] = None) -> AdditionalService:
        self._ensure_editable()
        if not name or not name.strip():
            raise ValidationError("Service name is required.")
        service = make_additional_service(name, amount, description)
        self.additional_services.append(service)
        return service

    def remove_additional_service(self, service_id: str) -> None:
        self._ensure_editable()
        self.additional_services = [s for s in self.additional_services if s.id != service_id]

    @property
    def due_preview(self) -> Decimal:
        if self.payment_plan is None:
            return self.pricing.grand_total
        return self.pricing.grand_total - self.payment_plan.tendered_amount
