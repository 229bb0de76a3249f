from __future__ import annotations


class PosError(Exception):
    pass


class ValidationError(PosError):
    pass


class StockExceededError(ValidationError):
    def __init__(self, item_id: str, available: int) -> None:
        if available <= 0:
            msg = f"Item {item_id} is out of stock"
        else:
            msg = f"Only {available} available for item {item_id}"
        super().__init__(msg)
        self.item_id = item_id
        self.available = available


class InvalidCouponError(PosError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class CheckoutFailedError(PosError):
    """Bill creation failed; nothing was written and the cart is still usable."""


class SessionStateError(PosError):
    pass


class GatewayError(PosError):
    pass


class GatewayTimeoutError(GatewayError):
    pass
