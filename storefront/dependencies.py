from fastapi import Depends, Request

from storefront.container import Storefront
from storefront.stores.protocols import (
    AuthStoreProtocol,
    CartStoreProtocol,
    ProductStoreProtocol,
)


def get_storefront(request: Request) -> Storefront:
    """Provide the storefront built at startup to endpoint functions."""
    return request.app.state.storefront


def get_auth_store(storefront: Storefront = Depends(get_storefront)) -> AuthStoreProtocol:
    return storefront.auth


def get_cart_store(storefront: Storefront = Depends(get_storefront)) -> CartStoreProtocol:
    return storefront.cart


def get_product_store(storefront: Storefront = Depends(get_storefront)) -> ProductStoreProtocol:
    return storefront.products
