from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from storefront.models.schemas import (
    Category,
    Product,
    ProductFilter,
    ProductSummary,
    SortDirection,
    SortKey,
)
from storefront.services.errors import ApiError, error_message
from storefront.services.gateway import ApiGateway
from storefront.stores.base import Store
from storefront.utils.logger import get_logger

logger = get_logger(__name__)


class ProductState(BaseModel):
    model_config = ConfigDict(frozen=True)

    products: list[ProductSummary] = []
    featured_products: list[ProductSummary] = []
    categories: list[Category] = []
    current_product: Product | None = None
    # None while filter intent has changed and no listing fetch has landed yet.
    total_pages: int | None = 0
    current_page: int | None = 0
    is_loading: bool = False
    error: str | None = None
    search_query: str = ""
    selected_category: int | None = None
    sort_by: SortKey | Literal["featured"] = "featured"
    sort_direction: SortDirection = "asc"


class ProductStore(Store[ProductState]):
    """
    Catalog browsing state.

    Listing fetches (``fetch_products`` and ``search_products``) draw tickets
    from one counter; a response is applied only when its ticket is newer
    than the last applied one, so the most recently started request wins.
    """

    def __init__(self, gateway: ApiGateway):
        super().__init__(ProductState())
        self.gateway = gateway
        self._in_flight = 0
        self._issued = {"listing": 0, "detail": 0}
        self._applied = {"listing": 0, "detail": 0}

    async def fetch_products(self, filters: ProductFilter | dict | None = None) -> bool:
        if isinstance(filters, dict):
            filters = ProductFilter.model_validate(filters)
        filters = filters or ProductFilter()
        intent = {
            "search_query": filters.query or "",
            "selected_category": filters.category_id,
        }
        if filters.sort_by:
            intent["sort_by"] = filters.sort_by
        if filters.sort_direction:
            intent["sort_direction"] = filters.sort_direction

        page = await self._fetch("listing", self.gateway.get_products(filters), "Failed to fetch products")
        if page is None:
            return False
        self._set(
            products=page.items,
            total_pages=page.total_pages,
            current_page=page.current_page,
            **intent,
        )
        return True

    async def search_products(self, query: str) -> bool:
        """One unpaginated page of results; earlier pagination is dropped."""
        self._set(search_query=query)
        items = await self._fetch("listing", self.gateway.search_products(query), "Failed to search products")
        if items is None:
            return False
        self._set(products=items, total_pages=1, current_page=0)
        return True

    async def fetch_featured_products(self) -> bool:
        items = await self._fetch(None, self.gateway.get_featured_products(), "Failed to fetch featured products")
        if items is None:
            return False
        self._set(featured_products=items)
        return True

    async def fetch_categories(self) -> bool:
        categories = await self._fetch(None, self.gateway.get_categories(), "Failed to fetch categories")
        if categories is None:
            return False
        self._set(categories=categories)
        return True

    async def fetch_product_by_id(self, product_id: int) -> bool:
        product = await self._fetch("detail", self.gateway.get_product(product_id), "Failed to fetch product")
        if product is None:
            return False
        self._set(current_product=product)
        return True

    def clear_current_product(self):
        # Outstanding detail responses must not repopulate a cleared product.
        self._applied["detail"] = self._issued["detail"]
        self._set(current_product=None)

    # -- Filter intent --

    def set_search_query(self, query: str):
        self._set(search_query=query, total_pages=None, current_page=None)

    def set_selected_category(self, category_id: int | None):
        self._set(selected_category=category_id, total_pages=None, current_page=None)

    def set_sort_by(self, sort_by: SortKey):
        self._set(sort_by=sort_by, total_pages=None, current_page=None)

    def set_sort_direction(self, direction: SortDirection):
        self._set(sort_direction=direction, total_pages=None, current_page=None)

    def current_filter(self, page: int | None = None, size: int | None = None) -> ProductFilter:
        """Build a ProductFilter from the recorded intent."""
        state = self.state
        return ProductFilter(
            query=state.search_query or None,
            category_id=state.selected_category,
            sort_by=None if state.sort_by == "featured" else state.sort_by,
            sort_direction=state.sort_direction,
            page=page,
            size=size,
        )

    def clear_error(self):
        self._set(error=None)

    # -- Transition helpers --

    async def _fetch(self, sequence: str | None, call, fallback: str) -> Any:
        """
        Await a gateway call inside the loading bookkeeping.

        Returns the result, or None when the call failed or was superseded by
        a newer request on the same sequence.
        """
        ticket = None
        if sequence is not None:
            self._issued[sequence] += 1
            ticket = self._issued[sequence]
        self._in_flight += 1
        self._set(is_loading=True, error=None)
        try:
            result = await call
        except ApiError as exc:
            if self._is_stale(sequence, ticket):
                logger.debug(f"Discarding stale failure: {exc!r}")
                return None
            self._accept(sequence, ticket)
            logger.info(f"{fallback}: {exc!r}")
            self._set(error=error_message(exc, fallback))
            return None
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._set(is_loading=False)

        if self._is_stale(sequence, ticket):
            logger.debug(f"Discarding out-of-order {sequence} response (ticket {ticket})")
            return None
        self._accept(sequence, ticket)
        return result

    def _is_stale(self, sequence: str | None, ticket: int | None) -> bool:
        return sequence is not None and ticket <= self._applied[sequence]

    def _accept(self, sequence: str | None, ticket: int | None):
        if sequence is not None:
            self._applied[sequence] = ticket
