from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from storefront.config import settings
from storefront.dependencies import get_product_store
from storefront.models.schemas import (
    Category,
    Product,
    ProductFilter,
    ProductListInfo,
    ProductSummary,
    SortDirection,
    SortKey,
)
from storefront.stores.products import ProductStore

router = APIRouter(prefix="/api", tags=["products"])


@router.get("/products", response_model=ProductListInfo)
async def list_products(
    query: str | None = Query(default=None),
    category_id: int | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    sort_by: SortKey | None = Query(default=None),
    sort_direction: SortDirection | None = Query(default=None),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    products: ProductStore = Depends(get_product_store),
):
    try:
        filters = ProductFilter(
            query=query,
            category_id=category_id,
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by,
            sort_direction=sort_direction,
            page=page,
            size=size,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if not await products.fetch_products(filters):
        raise HTTPException(status_code=400, detail=products.state.error)
    state = products.state
    return ProductListInfo(
        products=state.products,
        total_pages=state.total_pages,
        current_page=state.current_page,
    )


@router.get("/products/featured", response_model=list[ProductSummary])
async def featured_products(products: ProductStore = Depends(get_product_store)):
    if not await products.fetch_featured_products():
        raise HTTPException(status_code=400, detail=products.state.error)
    return products.state.featured_products


@router.get("/products/{product_id}", response_model=Product)
async def product_detail(product_id: int, products: ProductStore = Depends(get_product_store)):
    if not await products.fetch_product_by_id(product_id):
        raise HTTPException(status_code=400, detail=products.state.error)
    return products.state.current_product


@router.get("/categories", response_model=list[Category])
async def categories(products: ProductStore = Depends(get_product_store)):
    if not await products.fetch_categories():
        raise HTTPException(status_code=400, detail=products.state.error)
    return products.state.categories
