"""Interfaces the HTTP surface and tests program against, so fakes can stand in."""

from typing import Callable, Protocol

from storefront.models.schemas import Cart, ProductFilter, RegisterRequest, User
from storefront.stores.auth import AuthState
from storefront.stores.cart import CartState
from storefront.stores.pricing import OrderSummary
from storefront.stores.products import ProductState


class AuthStoreProtocol(Protocol):
    @property
    def state(self) -> AuthState:
        ...

    @property
    def user(self) -> User | None:
        ...

    async def login(self, email: str, password: str) -> None:
        ...

    async def register(self, profile: RegisterRequest) -> None:
        ...

    async def logout(self) -> None:
        ...

    async def refresh_user(self) -> None:
        ...

    async def rehydrate(self) -> None:
        ...

    def is_admin(self) -> bool:
        ...

    def is_seller(self) -> bool:
        ...

    def is_customer(self) -> bool:
        ...

    def subscribe(self, listener: Callable) -> Callable[[], None]:
        ...


class CartStoreProtocol(Protocol):
    @property
    def state(self) -> CartState:
        ...

    @property
    def cart(self) -> Cart | None:
        ...

    async def fetch_cart(self) -> bool:
        ...

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> bool:
        ...

    async def update_cart_item(self, item_id: int, quantity: int) -> bool:
        ...

    async def remove_from_cart(self, item_id: int) -> bool:
        ...

    async def clear_cart(self) -> bool:
        ...

    def reset(self) -> None:
        ...

    def item_count(self) -> int:
        ...

    def total(self) -> float:
        ...

    def summary(self, coupon_code: str | None = None) -> OrderSummary:
        ...


class ProductStoreProtocol(Protocol):
    @property
    def state(self) -> ProductState:
        ...

    async def fetch_products(self, filters: ProductFilter | dict | None = None) -> bool:
        ...

    async def search_products(self, query: str) -> bool:
        ...

    async def fetch_featured_products(self) -> bool:
        ...

    async def fetch_categories(self) -> bool:
        ...

    async def fetch_product_by_id(self, product_id: int) -> bool:
        ...

    def clear_current_product(self) -> None:
        ...
