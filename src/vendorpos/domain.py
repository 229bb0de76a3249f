from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, Optional, Union

from .errors import ValidationError

LineKind = Literal["product", "service"]
DiscountKind = Literal["percentage", "fixed"]
DiscountType = Literal["percentage", "fixed", "coupon"]
PaymentType = Literal["full", "partial", "credit"]
PaymentStatus = Literal["paid", "partial", "credit"]
LedgerDirection = Literal["in", "out"]
ReferenceType = Literal["order", "bill"]

LINE_KINDS = ("product", "service")
DISCOUNT_KINDS = ("percentage", "fixed")
PAYMENT_TYPES = ("full", "partial", "credit")
PAYMENT_STATUSES = ("paid", "partial", "credit")

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Quantize to cents; floats go through str() so 0.1 stays 0.10."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e


def parse_amount(raw) -> Decimal:
    """Lenient amount parsing for user input: blank or junk counts as zero."""
    if raw is None:
        return ZERO
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return ZERO
    if isinstance(raw, float):
        raw = str(raw)
    try:
        value = Decimal(raw)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    if not value.is_finite():
        return ZERO
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ValidationError(msg)


def _set_money(obj, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, money(getattr(obj, name)))


@dataclass(frozen=True)
class CartLine:
    kind: LineKind
    item_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    unit: str = "pcs"
    source_id: Optional[str] = None
    duration_minutes: Optional[int] = None

    def __post_init__(self) -> None:
        _require(self.kind in LINE_KINDS, f"Unknown line kind: {self.kind!r}")
        _require(bool(self.item_id), "Cart line needs an item id.")
        _require(bool(self.name and self.name.strip()), "Cart line needs a name.")
        _set_money(self, "unit_price")
        _require(self.unit_price >= 0, "Unit price cannot be negative.")
        _require(isinstance(self.quantity, int) and self.quantity >= 1, "Quantity must be >= 1.")
        if self.duration_minutes is not None:
            _require(self.kind == "service", "Only service lines carry a duration.")
            _require(self.duration_minutes > 0, "Duration must be > 0 minutes.")
        if self.source_id is None:
            object.__setattr__(self, "source_id", self.item_id)

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class AdditionalService:
    id: str
    name: str
    base_amount: Decimal
    tax_rate_percent: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    description: Optional[str] = None

    def __post_init__(self) -> None:
        _require(bool(self.name and self.name.strip()), "Additional service needs a name.")
        _set_money(self, "base_amount", "tax_amount", "total_amount")
        _require(self.base_amount >= 0, "Service amount cannot be negative.")
        _require(
            self.total_amount == self.base_amount + self.tax_amount,
            "Service total must equal amount plus tax.",
        )


@dataclass(frozen=True)
class NoDiscount:
    pass


@dataclass(frozen=True)
class ManualDiscount:
    kind: DiscountKind
    value: Decimal

    def __post_init__(self) -> None:
        _require(self.kind in DISCOUNT_KINDS, f"Unknown discount kind: {self.kind!r}")
        object.__setattr__(self, "value", parse_amount(self.value))
        _require(self.value >= 0, "Discount cannot be negative.")


@dataclass(frozen=True)
class CouponDiscount:
    code: str
    kind: DiscountKind
    value: Decimal
    coupon_id: str

    def __post_init__(self) -> None:
        _require(self.kind in DISCOUNT_KINDS, f"Unknown discount kind: {self.kind!r}")
        object.__setattr__(self, "value", parse_amount(self.value))
        _require(self.value >= 0, "Discount cannot be negative.")
        _require(bool(self.coupon_id), "Coupon discount needs a coupon id.")


DiscountSpec = Union[NoDiscount, ManualDiscount, CouponDiscount]


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    additional_services_total: Decimal
    grand_total: Decimal
    item_count: int


@dataclass(frozen=True)
class PaymentPlan:
    type: PaymentType
    tendered_amount: Decimal
    method: Optional[str] = None

    def __post_init__(self) -> None:
        _require(self.type in PAYMENT_TYPES, f"Unknown payment type: {self.type!r}")
        _set_money(self, "tendered_amount")
        _require(self.tendered_amount >= 0, "Tendered amount cannot be negative.")


@dataclass(frozen=True)
class CouponRule:
    id: str
    code: str
    vendor_id: str
    kind: DiscountKind
    value: Decimal

    def __post_init__(self) -> None:
        _require(self.kind in DISCOUNT_KINDS, f"Unknown discount kind: {self.kind!r}")
        _set_money(self, "value")

    def as_discount(self) -> CouponDiscount:
        return CouponDiscount(code=self.code, kind=self.kind, value=self.value, coupon_id=self.id)


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


# ---- create payloads -------------------------------------------------------


@dataclass(frozen=True)
class BillPayload:
    vendor_id: str
    bill_number: str
    customer_id: Optional[str]
    subtotal: Decimal
    discount_amount: Decimal
    discount_type: Optional[DiscountType]
    coupon_id: Optional[str]
    coupon_code: Optional[str]
    additional_charges: tuple[AdditionalService, ...]
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: PaymentStatus
    payment_method: Optional[str]
    notes: Optional[str] = None
    status: str = "completed"

    def __post_init__(self) -> None:
        _set_money(self, "subtotal", "discount_amount", "total_amount", "paid_amount", "due_amount")
        _require(bool(self.vendor_id), "Bill needs a vendor id.")
        _require(bool(self.bill_number), "Bill needs a bill number.")
        _require(self.payment_status in PAYMENT_STATUSES, f"Unknown payment status: {self.payment_status!r}")
        _require(ZERO <= self.discount_amount <= self.subtotal, "Discount must lie within the subtotal.")
        _require(self.paid_amount >= 0 and self.due_amount >= 0, "Paid and due amounts cannot be negative.")
        _require(
            self.paid_amount + self.due_amount == self.total_amount,
            "Paid plus due must equal the bill total.",
        )
        if self.coupon_id is not None:
            _require(self.discount_type == "coupon", "A coupon bill cannot carry a manual discount.")
        if self.discount_type == "coupon":
            _require(self.coupon_id is not None, "Coupon discount needs a coupon id.")


@dataclass(frozen=True)
class BillItemPayload:
    item_type: LineKind
    item_name: str
    quantity: int
    unit: str
    unit_price: Decimal
    total_price: Decimal
    product_id: Optional[str] = None
    service_id: Optional[str] = None

    def __post_init__(self) -> None:
        _require(self.item_type in LINE_KINDS, f"Unknown item type: {self.item_type!r}")
        _require(self.quantity >= 1, "Quantity must be >= 1.")
        _set_money(self, "unit_price", "total_price")


@dataclass(frozen=True)
class OrderPayload:
    vendor_id: str
    customer_id: Optional[str]
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    delivery_address: str
    city: str
    state: str
    pincode: str
    payment_status: PaymentStatus
    payment_method: str
    subtotal: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    delivery_charges: Decimal = ZERO
    status: str = "confirmed"
    source: str = "pos"

    def __post_init__(self) -> None:
        _set_money(self, "subtotal", "total_amount", "delivery_charges")
        _require(bool(self.vendor_id), "Order needs a vendor id.")
        _require(self.payment_status in PAYMENT_STATUSES, f"Unknown payment status: {self.payment_status!r}")
        _require(self.total_amount == self.subtotal + self.delivery_charges, "Order total mismatch.")


@dataclass(frozen=True)
class OrderItemPayload:
    product_id: str
    product_name: str
    product_unit: str
    quantity: int
    price_per_unit: Decimal
    total_price: Decimal

    def __post_init__(self) -> None:
        _require(bool(self.product_id), "Order item needs a product id.")
        _require(self.quantity >= 1, "Quantity must be >= 1.")
        _set_money(self, "price_per_unit", "total_price")


@dataclass(frozen=True)
class BookingPayload:
    vendor_id: str
    customer_id: Optional[str]
    service_id: str
    service_name: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    payment_status: PaymentStatus
    total_amount: Decimal
    notes: Optional[str] = None
    status: str = "confirmed"
    source: str = "pos"

    def __post_init__(self) -> None:
        _set_money(self, "total_amount")
        _require(bool(self.service_id), "Booking needs a service id.")
        _require(self.duration_minutes > 0, "Booking duration must be > 0.")
        _require(self.payment_status in PAYMENT_STATUSES, f"Unknown payment status: {self.payment_status!r}")


@dataclass(frozen=True)
class PaymentPayload:
    amount: Decimal
    payment_method: str

    def __post_init__(self) -> None:
        _set_money(self, "amount")
        _require(self.amount > 0, "Payment amount must be > 0.")
        _require(bool(self.payment_method), "Payment method cannot be empty.")


@dataclass(frozen=True)
class CouponUsagePayload:
    coupon_id: str
    customer_id: str
    order_id: Optional[str]
    discount_amount: Decimal

    def __post_init__(self) -> None:
        _set_money(self, "discount_amount")
        _require(bool(self.coupon_id) and bool(self.customer_id), "Coupon usage needs coupon and customer.")


@dataclass(frozen=True)
class LedgerTransactionPayload:
    vendor_id: str
    customer_id: str
    type: LedgerDirection
    amount: Decimal
    category: str
    payment_method: str
    description: str
    note: str
    reference_type: ReferenceType
    reference_id: str
    exclude_from_balance: bool
    is_pos_sale: bool = True

    def __post_init__(self) -> None:
        _set_money(self, "amount")
        _require(self.type in ("in", "out"), f"Unknown ledger direction: {self.type!r}")
        _require(self.amount > 0, "Ledger amount must be > 0.")
        _require(bool(self.customer_id), "Ledger entry needs a customer.")
        _require(self.reference_type in ("order", "bill"), "Unknown ledger reference type.")


# ---- durable records -------------------------------------------------------


@dataclass(frozen=True)
class Bill:
    id: str
    bill_number: str
    vendor_id: str
    customer_id: Optional[str]
    subtotal: Decimal
    discount_amount: Decimal
    discount_type: Optional[DiscountType]
    coupon_id: Optional[str]
    coupon_code: Optional[str]
    additional_charges: tuple[AdditionalService, ...]
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    status: str
    payment_status: PaymentStatus
    payment_method: Optional[str]
    notes: Optional[str]
    bill_date: datetime

    @classmethod
    def from_payload(cls, bill_id: str, payload: BillPayload, bill_date: datetime) -> "Bill":
        return cls(
            id=bill_id,
            bill_number=payload.bill_number,
            vendor_id=payload.vendor_id,
            customer_id=payload.customer_id,
            subtotal=payload.subtotal,
            discount_amount=payload.discount_amount,
            discount_type=payload.discount_type,
            coupon_id=payload.coupon_id,
            coupon_code=payload.coupon_code,
            additional_charges=payload.additional_charges,
            total_amount=payload.total_amount,
            paid_amount=payload.paid_amount,
            due_amount=payload.due_amount,
            status=payload.status,
            payment_status=payload.payment_status,
            payment_method=payload.payment_method,
            notes=payload.notes,
            bill_date=bill_date,
        )


@dataclass(frozen=True)
class BillItem:
    id: str
    bill_id: str
    item_type: LineKind
    item_name: str
    quantity: int
    total_price: Decimal


@dataclass(frozen=True)
class Order:
    id: str
    vendor_id: str
    customer_id: Optional[str]
    status: str
    payment_status: PaymentStatus
    total_amount: Decimal


@dataclass(frozen=True)
class OrderItem:
    id: str
    order_id: str
    product_id: str
    quantity: int
    total_price: Decimal


@dataclass(frozen=True)
class Booking:
    id: str
    vendor_id: str
    service_id: str
    status: str
    payment_status: PaymentStatus
    total_amount: Decimal
    booking_date: date
    start_time: time
    end_time: time


@dataclass(frozen=True)
class Payment:
    id: str
    bill_id: str
    amount: Decimal
    payment_method: str


@dataclass(frozen=True)
class CouponUsage:
    id: str
    coupon_id: str
    customer_id: str
    order_id: Optional[str]
    discount_amount: Decimal


@dataclass(frozen=True)
class LedgerTransaction:
    id: str
    vendor_id: str
    customer_id: str
    type: LedgerDirection
    amount: Decimal
    reference_type: ReferenceType
    reference_id: str
    exclude_from_balance: bool
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StepFailure:
    step: str
    error: str


@dataclass(frozen=True)
class CheckoutOutcome:
    bill: Bill
    pricing: PricingResult
    lines: tuple[CartLine, ...]
    order: Optional[Order] = None
    bookings: tuple[Booking, ...] = ()
    bill_items: tuple[BillItem, ...] = ()
    order_items: tuple[OrderItem, ...] = ()
    payment: Optional[Payment] = None
    coupon_usage: Optional[CouponUsage] = None
    ledger_entries: tuple[LedgerTransaction, ...] = ()
    failures: tuple[StepFailure, ...] = field(default=())

    @property
    def fully_recorded(self) -> bool:
        return not self.failures
