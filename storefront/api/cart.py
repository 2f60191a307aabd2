from fastapi import APIRouter, Depends, HTTPException, Query
from storefront.dependencies import get_cart_store
from storefront.models.schemas import AddItemBody, CartInfo, UpdateItemBody
from storefront.stores.cart import CartStore
from storefront.stores.pricing import InvalidCoupon, OrderSummary

router = APIRouter(prefix="/api/cart", tags=["cart"])


def cart_info(cart: CartStore) -> CartInfo:
    state = cart.state
    return CartInfo(
        cart=state.cart,
        status=state.status,
        item_count=cart.item_count(),
        total=cart.total(),
        error=state.error,
    )


def _checked(cart: CartStore, ok: bool) -> CartInfo:
    if not ok:
        raise HTTPException(status_code=400, detail=cart.state.error)
    return cart_info(cart)


def _quantity(quantity: int):
    if quantity < 1:
        raise HTTPException(status_code=422, detail="quantity must be at least 1; remove the item instead")


@router.get("", response_model=CartInfo)
async def get_cart(cart: CartStore = Depends(get_cart_store)):
    return _checked(cart, await cart.fetch_cart())


@router.post("/items", response_model=CartInfo)
async def add_item(body: AddItemBody, cart: CartStore = Depends(get_cart_store)):
    _quantity(body.quantity)
    return _checked(cart, await cart.add_to_cart(body.product_id, body.quantity))


@router.put("/items/{item_id}", response_model=CartInfo)
async def update_item(item_id: int, body: UpdateItemBody, cart: CartStore = Depends(get_cart_store)):
    _quantity(body.quantity)
    return _checked(cart, await cart.update_cart_item(item_id, body.quantity))


@router.delete("/items/{item_id}", response_model=CartInfo)
async def remove_item(item_id: int, cart: CartStore = Depends(get_cart_store)):
    return _checked(cart, await cart.remove_from_cart(item_id))


@router.delete("", response_model=CartInfo)
async def clear_cart(cart: CartStore = Depends(get_cart_store)):
    return _checked(cart, await cart.clear_cart())


@router.get("/summary", response_model=OrderSummary)
async def summary(
    coupon: str | None = Query(default=None),
    cart: CartStore = Depends(get_cart_store),
):
    try:
        return cart.summary(coupon)
    except InvalidCoupon as exc:
        raise HTTPException(status_code=422, detail=str(exc))
