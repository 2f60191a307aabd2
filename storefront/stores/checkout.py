from typing import Literal

from pydantic import BaseModel, ConfigDict

from storefront.models.schemas import Address, Order
from storefront.services.errors import ApiError, error_message
from storefront.services.gateway import ApiGateway
from storefront.stores.base import Store
from storefront.stores.protocols import CartStoreProtocol
from storefront.stores.pricing import InvalidCoupon
from storefront.utils.logger import get_logger

logger = get_logger(__name__)

STEPS = ("shipping", "payment", "review")

CheckoutStep = Literal[1, 2, 3]


class CheckoutState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: CheckoutStep = 1
    shipping_address: Address | None = None
    coupon_code: str | None = None
    order: Order | None = None
    is_submitting: bool = False
    error: str | None = None

    @property
    def step_name(self) -> str:
        return STEPS[self.step - 1]


class CheckoutStore(Store[CheckoutState]):
    """Shipping -> payment -> review, then order placement. No payment capture."""

    def __init__(self, gateway: ApiGateway):
        super().__init__(CheckoutState())
        self.gateway = gateway

    def next_step(self):
        if self.state.step < len(STEPS):
            self._set(step=self.state.step + 1)

    def prev_step(self):
        if self.state.step > 1:
            self._set(step=self.state.step - 1)

    def set_shipping(self, address: Address):
        self._set(shipping_address=address)

    def apply_coupon(self, cart_store: CartStoreProtocol, code: str) -> bool:
        try:
            summary = cart_store.summary(code)
        except InvalidCoupon as exc:
            self._set(error=str(exc))
            return False
        self._set(coupon_code=summary.coupon_code, error=None)
        return True

    def remove_coupon(self):
        self._set(coupon_code=None)

    async def place_order(
        self, cart_store: CartStoreProtocol, coupon_code: str | None = None
    ) -> Order | None:
        """
        Submit the cart as an order and empty the cart. Returns the order.

        ``coupon_code`` overrides the coupon applied earlier, if any.
        """
        if self.state.is_submitting:
            return None
        cart = cart_store.cart
        if cart is None or not cart.items:
            self._set(error="Your cart is empty")
            return None
        if self.state.step != len(STEPS):
            self._set(error="Review your order before placing it")
            return None
        if self.state.shipping_address is None:
            self._set(error="A shipping address is required")
            return None

        try:
            summary = cart_store.summary(coupon_code or self.state.coupon_code)
        except InvalidCoupon as exc:
            self._set(error=str(exc))
            return None
        payload = {
            "orderItems": [
                {"productId": item.product_id, "quantity": item.quantity, "price": item.price}
                for item in cart.items
            ],
            "shippingAddress": self.state.shipping_address.to_wire(),
            "couponCode": summary.coupon_code,
            "subtotal": float(summary.subtotal),
            "shipping": float(summary.shipping),
            "tax": float(summary.tax),
            "discount": float(summary.discount),
            "totalAmount": float(summary.total),
        }

        self._set(is_submitting=True, error=None)
        try:
            order = await self.gateway.create_order(payload)
        except ApiError as exc:
            logger.info(f"Order placement failed: {exc!r}")
            self._set(is_submitting=False, error=error_message(exc, "Failed to place order"))
            return None

        logger.info(f"Placed order {order.id}")
        self._set(order=order, is_submitting=False, step=1, coupon_code=None)
        await cart_store.clear_cart()
        return order

    def reset(self):
        self._set(step=1, shipping_address=None, coupon_code=None, order=None, error=None)
