from dataclasses import dataclass

import httpx

from storefront.config import Settings
from storefront.models.storage import SessionStorage
from storefront.services.gateway import ApiGateway
from storefront.stores.auth import AuthStore
from storefront.stores.cart import CartStore
from storefront.stores.checkout import CheckoutStore
from storefront.stores.pricing import PricingRules
from storefront.stores.products import ProductStore


@dataclass
class Storefront:
    """Everything one shopper's client needs, wired together once."""

    storage: SessionStorage
    gateway: ApiGateway
    auth: AuthStore
    cart: CartStore
    products: ProductStore
    checkout: CheckoutStore

    async def close(self):
        await self.gateway.close()


def _forget_on_sign_out(auth: AuthStore, cart: CartStore, checkout: CheckoutStore):
    """Drop the previous shopper's cart and checkout once their session ends."""
    signed_in = auth.is_authenticated

    def follow(state):
        nonlocal signed_in
        if signed_in and not state.is_authenticated:
            cart.reset()
            checkout.reset()
        signed_in = state.is_authenticated

    auth.subscribe(follow)


def build_storefront(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Storefront:
    storage = SessionStorage(settings.STORAGE_DB_PATH)
    gateway = ApiGateway(
        settings.API_BASE_URL,
        storage,
        timeout=settings.REQUEST_TIMEOUT,
        transport=transport,
    )
    auth = AuthStore(gateway)
    cart = CartStore(gateway, PricingRules.from_settings(settings))
    checkout = CheckoutStore(gateway)
    _forget_on_sign_out(auth, cart, checkout)
    return Storefront(
        storage=storage,
        gateway=gateway,
        auth=auth,
        cart=cart,
        products=ProductStore(gateway),
        checkout=checkout,
    )
