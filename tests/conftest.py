import itertools
import json

import httpx
import pytest

from storefront.config import Settings
from storefront.container import build_storefront

ALICE = {
    "id": 1,
    "email": "alice@example.com",
    "firstName": "Alice",
    "lastName": "Moss",
    "roles": [{"id": 1, "name": "ROLE_CUSTOMER"}],
}
ADMIN = {
    "id": 2,
    "email": "admin@example.com",
    "firstName": "Ada",
    "lastName": "Admin",
    "roles": [{"id": 2, "name": "ROLE_ADMIN"}, {"id": 3, "name": "ROLE_SELLER"}],
}

CATEGORIES = [
    {"id": 1, "name": "Supplements"},
    {"id": 2, "name": "Snacks"},
]

PRODUCTS = [
    {"id": 1, "name": "Whey Protein", "price": 49.99, "stock": 10, "categoryId": 1, "rating": 4.5, "createdAt": "2024-01-05", "featured": True},
    {"id": 2, "name": "Almond Bar", "price": 2.5, "stock": 100, "categoryId": 2, "rating": 4.0, "createdAt": "2024-03-01", "featured": False},
    {"id": 3, "name": "Vitamin D3", "price": 12.0, "stock": 3, "categoryId": 1, "rating": 4.8, "createdAt": "2024-02-10", "featured": True},
    {"id": 4, "name": "Omega 3", "price": 19.99, "stock": 0, "categoryId": 1, "rating": 3.9, "createdAt": "2024-04-20", "featured": False},
    {"id": 5, "name": "Trail Mix", "price": 15.0, "stock": 25, "categoryId": 2, "rating": 4.2, "createdAt": "2023-12-24", "featured": False},
    {"id": 6, "name": "Collagen", "price": 25.0, "stock": 8, "categoryId": 1, "rating": 4.6, "createdAt": "2024-05-02", "featured": False},
]

SORT_FIELDS = {"name": "name", "price": "price", "rating": "rating", "createdAt,desc": "createdAt"}


def _json(status: int, body=None) -> httpx.Response:
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, json=body)


class FakeBackend:
    """In-memory stand-in for the storefront REST backend."""

    def __init__(self):
        self.users = {
            ALICE["email"]: {"password": "secret", "user": dict(ALICE)},
            ADMIN["email"]: {"password": "admin", "user": dict(ADMIN)},
        }
        self.tokens: dict[str, str] = {}
        self.carts: dict[str, dict[int, int]] = {}
        self.products = {p["id"]: dict(p) for p in PRODUCTS}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], tuple[int, object]] = {}
        self.offline = False
        self.login_shape = "nested"
        self.orders: dict[int, dict] = {}
        self.reviews: list[dict] = []
        self._ids = itertools.count(100)

    # -- Test controls --

    def fail(self, method: str, path: str, status: int, body=None):
        """Make the next matching request answer with ``status``."""
        self.failures[(method, path)] = (status, body)

    def revoke_tokens(self):
        self.tokens.clear()

    def cart_of(self, email: str) -> dict[int, int]:
        return self.carts.setdefault(email, {})

    # -- Transport --

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("backend unreachable", request=request)
        key = (request.method, request.url.path)
        if key in self.failures:
            status, body = self.failures.pop(key)
            return _json(status, body)
        return self._route(request)

    def _route(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        body = json.loads(request.content) if request.content else {}

        if (method, path) == ("POST", "/auth/login"):
            return self._login(body)
        if (method, path) == ("POST", "/auth/register"):
            return self._register(body)
        if (method, path) == ("GET", "/api/products"):
            return self._list_products(request.url.params)
        if (method, path) == ("GET", "/api/products/featured"):
            return _json(200, [p for p in self.products.values() if p["featured"]])
        if (method, path) == ("GET", "/api/products/search"):
            needle = request.url.params.get("query", "").lower()
            return _json(200, [p for p in self.products.values() if needle in p["name"].lower()])
        if method == "GET" and path.startswith("/api/products/"):
            return self._product_detail(int(path.rsplit("/", 1)[1]))
        if (method, path) == ("GET", "/api/categories"):
            return _json(200, CATEGORIES)
        if method == "GET" and path.startswith("/api/categories/"):
            category_id = int(path.rsplit("/", 1)[1])
            category = next((c for c in CATEGORIES if c["id"] == category_id), None)
            if category is None:
                return _json(404, {"message": "Category not found"})
            return _json(200, category)
        if method == "GET" and path.startswith("/api/reviews/product/"):
            product_id = int(path.rsplit("/", 1)[1])
            return _json(200, [r for r in self.reviews if r["productId"] == product_id])
        if (method, path) == ("POST", "/api/chatbot/ask"):
            return _json(200, {"reply": f"You asked: {body.get('message', '')}"})

        email = self._caller(request)
        if email is None:
            return _json(401, {"message": "Full authentication is required"})
        if (method, path) == ("GET", "/auth/me"):
            return _json(200, self.users[email]["user"])
        if path.startswith("/api/cart"):
            return self._cart(method, path, body, email)
        if path.startswith("/api/orders"):
            return self._order_routes(method, path, body, email)
        if (method, path) == ("POST", "/api/reviews"):
            return self._create_review(body, email)
        if path.startswith("/api/users/"):
            return self._profile(method, path, body, email)
        if (method, path) == ("POST", "/api/payments/create-session"):
            order = self.orders.get(body.get("orderId"))
            if order is None:
                return _json(404, {"message": "Order not found"})
            return _json(200, {"sessionId": f"cs_{order['id']}", "url": f"https://pay.test/cs_{order['id']}"})
        if path.startswith("/api/admin/"):
            return self._reports(path, request.url.params, email)
        return _json(404, {"message": f"No route for {method} {path}"})

    def _caller(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header.removeprefix("Bearer "))

    def _issue_token(self, email: str) -> str:
        token = f"token-{next(self._ids)}"
        self.tokens[token] = email
        return token

    def _login(self, body: dict) -> httpx.Response:
        account = self.users.get(body.get("email"))
        if account is None or account["password"] != body.get("password"):
            return _json(401, {"message": "Invalid email or password"})
        token = self._issue_token(body["email"])
        if self.login_shape == "flat":
            return _json(200, {"token": token, **account["user"]})
        return _json(200, {"jwt": token, "user": account["user"]})

    def _register(self, body: dict) -> httpx.Response:
        email = body.get("email")
        if email in self.users:
            return _json(409, "User with this email already exists")
        user = {
            "id": next(self._ids),
            "email": email,
            "firstName": body.get("firstName", ""),
            "lastName": body.get("lastName", ""),
            "roles": ["CUSTOMER"],
        }
        self.users[email] = {"password": body.get("password"), "user": user}
        return _json(201, {"data": {"token": self._issue_token(email), "user": user}})

    def _list_products(self, params) -> httpx.Response:
        items = list(self.products.values())
        if params.get("search"):
            items = [p for p in items if params["search"].lower() in p["name"].lower()]
        if params.get("categoryId"):
            items = [p for p in items if p["categoryId"] == int(params["categoryId"])]
        if params.get("minPrice"):
            items = [p for p in items if p["price"] >= float(params["minPrice"])]
        if params.get("maxPrice"):
            items = [p for p in items if p["price"] <= float(params["maxPrice"])]
        sort = params.get("sort", "name")
        reverse = params.get("order", "asc") == "desc" or sort == "createdAt,desc"
        items.sort(key=lambda p: p[SORT_FIELDS[sort]], reverse=reverse)

        page, size = int(params.get("page", 0)), int(params.get("size", 12))
        total_pages = max(1, -(-len(items) // size))
        return _json(200, {
            "content": items[page * size:(page + 1) * size],
            "totalElements": len(items),
            "totalPages": total_pages,
            "number": page,
            "size": size,
        })

    def _product_detail(self, product_id: int) -> httpx.Response:
        product = self.products.get(product_id)
        if product is None:
            return _json(404, {"message": "Product not found"})
        detail = {k: v for k, v in product.items() if k != "categoryId"}
        category = next(c for c in CATEGORIES if c["id"] == product["categoryId"])
        return _json(200, {**detail, "category": category, "description": "Detail"})

    def _cart_payload(self, email: str) -> dict:
        lines = []
        for product_id, quantity in self.cart_of(email).items():
            product = self.products[product_id]
            lines.append({
                "id": 1000 + product_id,
                "productId": product_id,
                "productName": product["name"],
                "price": product["price"],
                "quantity": quantity,
                "subtotal": round(product["price"] * quantity, 2),
            })
        total = round(sum(line["subtotal"] for line in lines), 2)
        return {"id": 7, "userId": self.users[email]["user"]["id"], "items": lines, "totalAmount": total}

    def _cart(self, method: str, path: str, body: dict, email: str) -> httpx.Response:
        cart = self.cart_of(email)
        if (method, path) == ("GET", "/api/cart"):
            return _json(200, self._cart_payload(email))
        if (method, path) in {("POST", "/api/cart/add"), ("PUT", "/api/cart/update")}:
            product = self.products.get(body.get("productId"))
            if product is None:
                return _json(404, {"message": "Product not found"})
            quantity = body["quantity"]
            if method == "POST":
                quantity += cart.get(product["id"], 0)
            if quantity > product["stock"]:
                return _json(400, {"message": f"Only {product['stock']} left in stock"})
            cart[product["id"]] = quantity
            return _json(200, self._cart_payload(email))
        if method == "DELETE" and path.startswith("/api/cart/remove/"):
            cart.pop(int(path.rsplit("/", 1)[1]), None)
            return _json(200, self._cart_payload(email))
        if (method, path) == ("DELETE", "/api/cart/clear"):
            cart.clear()
            return _json(200, self._cart_payload(email))
        return _json(404, {"message": "Not found"})

    def _is_admin(self, email: str) -> bool:
        roles = self.users[email]["user"]["roles"]
        names = {r["name"] if isinstance(r, dict) else r for r in roles}
        return bool(names & {"ROLE_ADMIN", "ADMIN"})

    def _order_routes(self, method: str, path: str, body: dict, email: str) -> httpx.Response:
        user_id = self.users[email]["user"]["id"]
        if (method, path) == ("POST", "/api/orders"):
            order = {
                "id": next(self._ids),
                "userId": user_id,
                "orderItems": body["orderItems"],
                "totalAmount": body["totalAmount"],
                "status": "PENDING",
                "shippingAddress": body["shippingAddress"],
            }
            self.orders[order["id"]] = order
            return _json(201, order)
        if (method, path) == ("GET", "/api/orders"):
            return _json(200, [o for o in self.orders.values() if o["userId"] == user_id])
        if method == "PUT" and path.endswith("/status"):
            if not self._is_admin(email):
                return _json(403, {"message": "Access denied"})
            order = self.orders.get(int(path.split("/")[3]))
            if order is None:
                return _json(404, {"message": "Order not found"})
            order["status"] = body["status"]
            return _json(200, order)
        return _json(404, {"message": "Not found"})

    def _create_review(self, body: dict, email: str) -> httpx.Response:
        user = self.users[email]["user"]
        review = {
            "id": next(self._ids),
            "productId": body["productId"],
            "rating": body["rating"],
            "comment": body["comment"],
            "userId": user["id"],
            "userName": f"{user['firstName']} {user['lastName']}",
            "verified": False,
        }
        self.reviews.append(review)
        return _json(201, review)

    def _profile(self, method: str, path: str, body: dict, email: str) -> httpx.Response:
        account = self.users[email]
        if (method, path) == ("GET", "/api/users/profile"):
            return _json(200, account["user"])
        if (method, path) == ("PUT", "/api/users/profile"):
            account["user"].update(body)
            return _json(200, account["user"])
        if (method, path) == ("PUT", "/api/users/change-password"):
            if body.get("currentPassword") != account["password"]:
                return _json(400, {"message": "Current password is incorrect"})
            account["password"] = body["newPassword"]
            return _json(200, {"message": "Password updated"})
        return _json(404, {"message": "Not found"})

    def _reports(self, path: str, params, email: str) -> httpx.Response:
        if not self._is_admin(email):
            return _json(403, {"message": "Access denied"})
        if path == "/api/admin/reports/sales":
            return _json(200, {
                "startDate": params["startDate"],
                "endDate": params["endDate"],
                "orderCount": len(self.orders),
                "totalSales": round(sum(o["totalAmount"] for o in self.orders.values()), 2),
            })
        if path == "/api/admin/reports/users":
            return _json(200, {"totalUsers": len(self.users)})
        return _json(404, {"message": "Not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        API_BASE_URL="http://backend.test",
        STORAGE_DB_PATH=str(tmp_path / "storefront.db"),
    )


@pytest.fixture
async def storefront(backend, test_settings):
    sf = build_storefront(test_settings, transport=httpx.MockTransport(backend.handle))
    yield sf
    await sf.close()


@pytest.fixture
async def signed_in(storefront):
    await storefront.auth.login("alice@example.com", "secret")
    return storefront
