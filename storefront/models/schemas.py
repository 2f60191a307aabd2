from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Backend payloads are camelCase; we read and write them by alias."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# --- Users & session ---

class User(WireModel):
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = None
    avatar: str | None = None
    roles: frozenset[str] = frozenset()

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, value: Any) -> frozenset[str]:
        # Backend sends [{"id": 1, "name": "ROLE_ADMIN"}], ["ADMIN"] or "ADMIN".
        if value is None:
            return frozenset()
        if isinstance(value, (str, dict)):
            value = [value]
        names = set()
        for role in value:
            name = role.get("name") if isinstance(role, dict) else role
            if not name:
                continue
            name = str(name).upper()
            names.add(name.removeprefix("ROLE_"))
        return frozenset(names)

    def has_role(self, role: str) -> bool:
        return role.upper() in self.roles

    def to_wire(self) -> dict:
        data = super().to_wire()
        data["roles"] = sorted(self.roles)
        return data


class Session(BaseModel):
    user: User | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None


class AuthRequest(WireModel):
    email: str
    password: str


class RegisterRequest(WireModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str | None = None


class UserUpdate(WireModel):
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    avatar: str | None = None


class PasswordUpdate(WireModel):
    current_password: str
    new_password: str


# --- Catalog ---

class Category(WireModel):
    id: int
    name: str
    description: str | None = None
    image_url: str | None = None


class ProductSummary(WireModel):
    id: int
    name: str
    description: str = ""
    price: float
    stock: int = 0
    image_url: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    rating: float | None = None
    review_count: int = 0
    featured: bool = False

    @model_validator(mode="before")
    @classmethod
    def _flatten_category(cls, data: Any) -> Any:
        # Detail payloads nest the category; listings flatten it.
        if isinstance(data, dict) and isinstance(data.get("category"), dict):
            data = dict(data)
            category = data.pop("category")
            data.setdefault("categoryId", category.get("id"))
            data.setdefault("categoryName", category.get("name"))
        return data


class Product(ProductSummary):
    original_price: float | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ProductPage(BaseModel):
    items: list[ProductSummary]
    total_pages: int
    current_page: int


SortKey = Literal["name", "price", "rating", "newest"]
SortDirection = Literal["asc", "desc"]


class ProductFilter(BaseModel):
    """Listing filter. Accepts snake_case or the backend's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str | None = None
    category_id: int | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    sort_by: SortKey | None = None
    sort_direction: SortDirection | None = None
    page: int | None = Field(default=None, ge=0)
    size: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _price_bounds(self) -> "ProductFilter":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        return self

    def to_query(self) -> dict:
        """Backend query parameters. Unset fields are left to backend defaults."""
        sort = self.sort_by
        if sort == "newest":
            sort = "createdAt,desc"
        return {
            "search": self.query,
            "categoryId": self.category_id,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "sort": sort,
            "order": self.sort_direction,
            "page": self.page,
            "size": self.size,
        }


# --- Cart ---

class CartItem(WireModel):
    id: int
    product_id: int
    product_name: str = ""
    product_image_url: str | None = None
    price: float
    quantity: int = Field(ge=1)
    subtotal: float | None = None

    @model_validator(mode="after")
    def _fill_subtotal(self) -> "CartItem":
        if self.subtotal is None:
            self.subtotal = round(self.price * self.quantity, 2)
        return self


class Cart(WireModel):
    id: int | None = None
    user_id: int | None = None
    items: list[CartItem] = []
    total_amount: float = 0.0


# --- Orders, reviews ---

class Address(WireModel):
    street: str
    city: str
    state: str = ""
    zip_code: str = ""
    country: str = ""
    id: int | None = None
    is_default: bool = False


class OrderItem(WireModel):
    product_id: int
    quantity: int = Field(ge=1)
    price: float
    id: int | None = None
    product_name: str = ""
    subtotal: float | None = None


OrderStatus = Literal["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]


class Order(WireModel):
    id: int
    user_id: int | None = None
    order_items: list[OrderItem] = []
    total_amount: float = 0.0
    status: OrderStatus = "PENDING"
    shipping_address: Address | None = None
    payment_method: str | None = None
    payment_status: str | None = None
    created_at: str | None = None


class Review(WireModel):
    id: int
    product_id: int
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    user_id: int | None = None
    user_name: str | None = None
    verified: bool = False
    created_at: str | None = None


class ReviewRequest(WireModel):
    product_id: int
    rating: int = Field(ge=1, le=5)
    comment: str


# --- Local HTTP surface ---

class AddItemBody(BaseModel):
    product_id: int
    quantity: int = 1


class UpdateItemBody(BaseModel):
    quantity: int


class SessionInfo(BaseModel):
    status: str
    is_authenticated: bool
    user: User | None = None
    is_admin: bool = False
    is_seller: bool = False
    is_customer: bool = False
    error: str | None = None


class CartInfo(BaseModel):
    cart: Cart | None = None
    status: str
    item_count: int
    total: float
    error: str | None = None


class ProductListInfo(BaseModel):
    products: list[ProductSummary]
    total_pages: int | None = None
    current_page: int | None = None
    error: str | None = None
