from decimal import Decimal
from typing import Awaitable, Literal

from pydantic import BaseModel, ConfigDict

from storefront.models.schemas import Cart
from storefront.services.errors import ApiError, error_message
from storefront.services.gateway import ApiGateway
from storefront.stores.base import Store
from storefront.stores.pricing import OrderSummary, PricingRules, order_summary
from storefront.utils.logger import get_logger

logger = get_logger(__name__)

CartStatus = Literal["idle", "syncing"]


class CartState(BaseModel):
    model_config = ConfigDict(frozen=True)

    cart: Cart | None = None
    status: CartStatus = "idle"
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status == "syncing"


def _check_quantity(quantity: int):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"quantity must be a positive integer, got {quantity!r}; remove the item instead")


class CartStore(Store[CartState]):
    """
    Server-synced cart.

    Every mutation is followed by a full re-fetch, so ``state.cart`` is always
    the backend's last snapshot. A failed action leaves the cart as it was.
    """

    def __init__(self, gateway: ApiGateway, pricing: PricingRules | None = None):
        super().__init__(CartState())
        self.gateway = gateway
        self.pricing = pricing or PricingRules()
        self._in_flight = 0
        self._generation = 0

    @property
    def cart(self) -> Cart | None:
        return self.state.cart

    async def fetch_cart(self) -> bool:
        return await self._run(None, "Failed to fetch cart")

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> bool:
        _check_quantity(quantity)
        return await self._run(self.gateway.add_to_cart(product_id, quantity), "Failed to add item to cart")

    async def update_cart_item(self, item_id: int, quantity: int) -> bool:
        _check_quantity(quantity)
        return await self._run(self.gateway.update_cart_item(item_id, quantity), "Failed to update cart item")

    async def remove_from_cart(self, item_id: int) -> bool:
        return await self._run(self.gateway.remove_from_cart(item_id), "Failed to remove item from cart")

    async def clear_cart(self) -> bool:
        self._begin()
        try:
            await self.gateway.clear_cart()
        except ApiError as exc:
            self._fail(exc, "Failed to clear cart")
            return False
        else:
            self._set(cart=None)
            return True
        finally:
            self._end()

    def clear_error(self):
        self._set(error=None)

    def reset(self):
        """Forget the local cart without touching the backend. In-flight fetches are dropped."""
        self._generation += 1
        self._set(cart=None, error=None)

    # -- Derived reads, no I/O --

    def item_count(self) -> int:
        if self.cart is None:
            return 0
        return sum(item.quantity for item in self.cart.items)

    def total(self) -> float:
        return self.cart.total_amount if self.cart is not None else 0

    def subtotal(self) -> Decimal:
        if self.cart is None:
            return Decimal("0")
        return sum((Decimal(str(item.subtotal)) for item in self.cart.items), Decimal("0"))

    def summary(self, coupon_code: str | None = None) -> OrderSummary:
        return order_summary(self.subtotal(), coupon_code, self.pricing)

    # -- Transition helpers --

    async def _run(self, mutation: Awaitable | None, fallback: str) -> bool:
        generation = self._generation
        self._begin()
        try:
            if mutation is not None:
                await mutation
            cart = await self.gateway.get_cart()
        except ApiError as exc:
            self._fail(exc, fallback)
            return False
        else:
            if generation == self._generation:
                self._set(cart=cart)
            return True
        finally:
            self._end()

    def _begin(self):
        self._in_flight += 1
        self._set(status="syncing", error=None)

    def _end(self):
        self._in_flight -= 1
        if self._in_flight == 0:
            self._set(status="idle")

    def _fail(self, exc: ApiError, fallback: str):
        logger.info(f"{fallback}: {exc!r}")
        self._set(error=error_message(exc, fallback))
