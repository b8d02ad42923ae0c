"""
Checkout flow: IDLE -> SUBMITTING -> SUCCESS | FAILED.

A failed checkout keeps the cart intact and can be retried or cancelled;
a successful one clears the cart and waits for ``acknowledge()``.
"""

from enum import Enum
from typing import Any, Optional

import structlog

from cart import CartError, ShoppingCart
from ordering_client import ContactMessage, CustomerInfo, FailureKind, Order, OrderingClient, Result

logger = structlog.get_logger()


class CheckoutState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class InvalidTransition(CartError):
    """Raised when a checkout action is not allowed in the current state."""


class CheckoutFlow:
    def __init__(self, cart: ShoppingCart, client: OrderingClient):
        self.cart = cart
        self.client = client
        self.state = CheckoutState.IDLE
        self.last_receipt: Optional[Any] = None
        self.last_error: Optional[Result] = None
        self._customer_info: Optional[CustomerInfo] = None

    async def submit(self, customer_info: CustomerInfo) -> Result:
        if self.state not in (CheckoutState.IDLE, CheckoutState.FAILED):
            raise InvalidTransition(f"Cannot submit an order while {self.state.value}")

        if self.cart.snapshot().is_empty:
            return Result.fail(FailureKind.VALIDATION, "Your cart is empty!")
        missing = customer_info.missing_fields()
        if missing:
            return Result.fail(FailureKind.VALIDATION, f"Please fill in: {', '.join(missing)}")

        self._customer_info = customer_info
        return await self._send()

    async def retry(self) -> Result:
        if self.state is not CheckoutState.FAILED or self._customer_info is None:
            raise InvalidTransition(f"Nothing to retry while {self.state.value}")
        if self.cart.snapshot().is_empty:
            return Result.fail(FailureKind.VALIDATION, "Your cart is empty!")
        return await self._send()

    def cancel(self) -> None:
        if self.state is not CheckoutState.FAILED:
            raise InvalidTransition(f"Cannot cancel while {self.state.value}")
        self.state = CheckoutState.IDLE
        self.last_error = None

    def acknowledge(self) -> None:
        if self.state is not CheckoutState.SUCCESS:
            raise InvalidTransition(f"Cannot acknowledge while {self.state.value}")
        self.state = CheckoutState.IDLE

    async def send_contact_message(self, name: str, email: str, message: str) -> Result:
        return await self.client.submit_contact_message(ContactMessage(name=name, email=email, message=message))

    async def _send(self) -> Result:
        order = Order.from_snapshot(self.cart.snapshot(), self._customer_info)
        self.state = CheckoutState.SUBMITTING
        logger.info("checkout_submitting", items_count=len(order.items), total=str(order.total))

        try:
            result = await self.client.submit_order(order)
        except Exception as e:
            self.last_error = Result.fail(FailureKind.TRANSPORT, f"Order submission failed: {e}")
            self.state = CheckoutState.FAILED
            logger.error("checkout_failed", kind=FailureKind.TRANSPORT.value, error=str(e))
            raise

        if not result.success:
            self.last_error = result
            self.state = CheckoutState.FAILED
            logger.warning("checkout_failed", kind=result.kind.value, error=result.error)
            return result

        # the order is placed at this point, whatever happens to the local slot
        self.last_receipt = result.data
        self.last_error = None
        self.state = CheckoutState.SUCCESS
        logger.info("checkout_succeeded", order_id=result.data.get("orderId"))
        try:
            self.cart.clear()
        except OSError as e:
            logger.error("checkout_cart_clear_failed", order_id=result.data.get("orderId"), error=str(e))
        return result
