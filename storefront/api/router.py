from fastapi import APIRouter
from storefront.api.cart import router as cart_router
from storefront.api.products import router as products_router
from storefront.api.session import router as session_router

router = APIRouter()
router.include_router(session_router)
router.include_router(cart_router)
router.include_router(products_router)
