from typing import Any, Callable

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from storefront.models.schemas import (
    AuthRequest,
    Cart,
    Category,
    Order,
    PasswordUpdate,
    Product,
    ProductFilter,
    ProductPage,
    ProductSummary,
    RegisterRequest,
    Review,
    ReviewRequest,
    Session,
    User,
    UserUpdate,
)
from storefront.models.storage import SessionStorage
from storefront.services.errors import (
    ClientError,
    NetworkFailure,
    ServerError,
    Unauthenticated,
)
from storefront.utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_FIELDS = ("jwt", "token", "accessToken", "access_token")


# -- Boundary adapters: backend shapes in, one internal shape out --

def parse_as(model: Any, data: Any, what: str) -> Any:
    """Validate a decoded body, turning shape errors into ClientError."""
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as exc:
        raise ClientError(f"Unexpected {what} response from server", details=exc.errors()) from exc


def normalize_session(payload: Any) -> Session:
    """
    Build a Session from an auth response.

    Accepts ``{"jwt": ..., "user": {...}}``, ``{"token": ..., "user": {...}}``,
    a flat ``{"token": ..., "id": ..., "email": ...}`` and any of those wrapped
    in a ``{"data": ...}`` envelope. Both a token and a user are required.
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    if not isinstance(payload, dict):
        raise ClientError("Unexpected authentication response from server")

    token = next((payload[f] for f in TOKEN_FIELDS if payload.get(f)), None)
    if isinstance(payload.get("user"), dict):
        user_data = payload["user"]
    elif "email" in payload:
        user_data = {k: v for k, v in payload.items() if k not in TOKEN_FIELDS}
    else:
        user_data = None

    if not token or user_data is None:
        raise ClientError("Authentication response is missing the token or the user")
    return Session(token=str(token), user=parse_as(User, user_data, "user"))


def parse_product_page(payload: Any) -> ProductPage:
    """A page envelope (content/totalPages/number) or a bare list as one page."""
    if isinstance(payload, list):
        items = parse_as(list[ProductSummary], payload, "product list")
        return ProductPage(items=items, total_pages=1, current_page=0)
    if not isinstance(payload, dict) or not isinstance(payload.get("content"), list):
        raise ClientError("Unexpected product list response from server")
    items = parse_as(list[ProductSummary], payload["content"], "product list")
    return ProductPage(
        items=items,
        total_pages=int(payload.get("totalPages") or 0),
        current_page=int(payload.get("number", payload.get("page", 0)) or 0),
    )


def _decode_message(data: Any) -> str | None:
    if isinstance(data, str):
        return data.strip() or None
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    return None


class ApiGateway:
    """
    The only component that talks to the backend.

    Attaches the stored bearer token to every request and turns every failure
    into one of the ApiError kinds. It never retries and never navigates.
    """

    def __init__(
        self,
        base_url: str,
        storage: SessionStorage,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._unauthenticated_listeners: list[Callable[[], None]] = []

    def on_unauthenticated(self, listener: Callable[[], None]):
        """Register a callback fired after a 401 tore the stored session down."""
        self._unauthenticated_listeners.append(listener)

    # -- Low-level helpers --

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        query: dict | None = None,
        *,
        auth_required: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON body (None if empty)."""
        headers = {}
        token = await self.storage.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if isinstance(body, BaseModel):
            body = body.model_dump(by_alias=True, exclude_none=True, mode="json")
        params = {k: v for k, v in (query or {}).items() if v is not None}

        logger.debug(f"{method} {path} params={params}")
        try:
            response = await self._client.request(
                method, path, json=body, params=params or None, headers=headers
            )
        except httpx.RequestError as exc:
            logger.warning(f"{method} {path} failed without a response: {exc!r}")
            raise NetworkFailure(
                "Unable to reach the store. Check your connection and try again."
            ) from exc

        data = self._decode(response)
        if response.is_success:
            return data

        status = response.status_code
        message = _decode_message(data)
        logger.warning(f"{method} {path} -> {status}: {message}")

        if status == 401 and auth_required:
            await self.remove_auth_token()
            for listener in self._unauthenticated_listeners:
                listener()
            raise Unauthenticated(
                message or "Your session has expired. Please sign in again.",
                status_code=status,
                details=data,
            )
        if status >= 500:
            raise ServerError(
                message or "Something went wrong on our side. Please try again later.",
                status_code=status,
                details=data,
            )
        raise ClientError(message or "Request failed", status_code=status, details=data)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            if response.is_success:
                raise ClientError("Unexpected response from server", status_code=response.status_code)
            return response.text

    # -- Token storage --

    async def set_auth_token(self, token: str):
        await self.storage.set_token(token)

    async def remove_auth_token(self):
        await self.storage.clear()

    async def set_current_user(self, user: User):
        await self.storage.set_user(user.to_wire())

    async def get_current_user_from_storage(self) -> User | None:
        data = await self.storage.get_user()
        if data is None:
            return None
        try:
            return User.model_validate(data)
        except ValidationError:
            return None

    async def is_authenticated(self) -> bool:
        return bool(await self.storage.get_token())

    # -- Auth --

    async def login(self, email: str, password: str) -> Session:
        data = await self.request("POST", "/auth/login", AuthRequest(email=email, password=password))
        return normalize_session(data)

    async def register(self, profile: RegisterRequest) -> Session:
        data = await self.request("POST", "/auth/register", profile)
        return normalize_session(data)

    async def get_current_user(self) -> User:
        data = await self.request("GET", "/auth/me", auth_required=True)
        return parse_as(User, data, "user")

    # -- Catalog --

    async def get_products(self, filters: ProductFilter | None = None) -> ProductPage:
        query = filters.to_query() if filters else None
        data = await self.request("GET", "/api/products", query=query)
        return parse_product_page(data)

    async def get_featured_products(self) -> list[ProductSummary]:
        data = await self.request("GET", "/api/products/featured")
        return parse_product_page(data).items

    async def search_products(self, query: str) -> list[ProductSummary]:
        data = await self.request("GET", "/api/products/search", query={"query": query})
        return parse_product_page(data).items

    async def get_product(self, product_id: int) -> Product:
        data = await self.request("GET", f"/api/products/{product_id}")
        return parse_as(Product, data, "product")

    async def get_categories(self) -> list[Category]:
        data = await self.request("GET", "/api/categories")
        return parse_as(list[Category], data or [], "category list")

    async def get_category(self, category_id: int) -> Category:
        data = await self.request("GET", f"/api/categories/{category_id}")
        return parse_as(Category, data, "category")

    # -- Cart --

    async def get_cart(self) -> Cart:
        data = await self.request("GET", "/api/cart", auth_required=True)
        return parse_as(Cart, data or {}, "cart")

    async def add_to_cart(self, product_id: int, quantity: int) -> Any:
        return await self.request(
            "POST", "/api/cart/add", {"productId": product_id, "quantity": quantity}, auth_required=True
        )

    async def update_cart_item(self, item_id: int, quantity: int) -> Any:
        # Cart lines are keyed by product id on the backend.
        return await self.request(
            "PUT", "/api/cart/update", {"productId": item_id, "quantity": quantity}, auth_required=True
        )

    async def remove_from_cart(self, item_id: int) -> Any:
        return await self.request("DELETE", f"/api/cart/remove/{item_id}", auth_required=True)

    async def clear_cart(self) -> Any:
        return await self.request("DELETE", "/api/cart/clear", auth_required=True)

    # -- Orders --

    async def get_orders(self) -> list[Order]:
        data = await self.request("GET", "/api/orders", auth_required=True)
        return parse_as(list[Order], data or [], "order list")

    async def create_order(self, order: dict) -> Order:
        data = await self.request("POST", "/api/orders", order, auth_required=True)
        return parse_as(Order, data, "order")

    async def update_order_status(self, order_id: int, status: str) -> Order:
        data = await self.request(
            "PUT", f"/api/orders/{order_id}/status", {"status": status}, auth_required=True
        )
        return parse_as(Order, data, "order")

    # -- Reviews --

    async def get_reviews(self, product_id: int) -> list[Review]:
        data = await self.request("GET", f"/api/reviews/product/{product_id}")
        return parse_as(list[Review], data or [], "review list")

    async def create_review(self, review: ReviewRequest) -> Review:
        data = await self.request("POST", "/api/reviews", review, auth_required=True)
        return parse_as(Review, data, "review")

    # -- Profile --

    async def get_user_profile(self) -> User:
        data = await self.request("GET", "/api/users/profile", auth_required=True)
        return parse_as(User, data, "user")

    async def update_user_profile(self, update: UserUpdate) -> User:
        data = await self.request("PUT", "/api/users/profile", update, auth_required=True)
        return parse_as(User, data, "user")

    async def change_password(self, update: PasswordUpdate):
        await self.request("PUT", "/api/users/change-password", update, auth_required=True)

    # -- Payments, admin, chatbot --

    async def create_payment_session(self, order_id: int) -> dict:
        return await self.request(
            "POST", "/api/payments/create-session", {"orderId": order_id}, auth_required=True
        )

    async def get_sales_report(self, start_date: str, end_date: str) -> dict:
        return await self.request(
            "GET",
            "/api/admin/reports/sales",
            query={"startDate": start_date, "endDate": end_date},
            auth_required=True,
        )

    async def get_user_activity_report(self) -> dict:
        return await self.request("GET", "/api/admin/reports/users", auth_required=True)

    async def send_chat_message(self, message: str) -> dict:
        return await self.request("POST", "/api/chatbot/ask", {"message": message})

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
