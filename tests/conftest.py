"""
Shared fixtures: a fake grocery backend written with FastAPI and mounted
in-process through httpx.ASGITransport, so the real client stack (interceptor,
gateways, reconciliation) runs end to end without a network.
"""
import asyncio
import itertools
from typing import Dict, List, Optional

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quickcart.config import Settings
from quickcart.main import create_client
from quickcart.models.session import SessionStore


PRODUCT_A = {
    "_id": "prod-a",
    "name": "Basmati Rice 1kg",
    "price": 100,
    "discount": 10,
    "hasVariations": False,
    "variations": [],
    "stock": 20,
    "image": ["uploads/rice.png"],
}

PRODUCT_B = {
    "_id": "prod-b",
    "name": "Cold Pressed Oil",
    "price": 80,
    "discount": 0,
    "hasVariations": True,
    "variations": [
        {"_id": "var-500ml", "size": "500ml", "price": 50, "stock": 5},
        {"_id": "var-1l", "size": "1L", "price": 95, "stock": 0},
    ],
    "stock": 5,
}


def _unauthorized(message: str = "Provide token") -> JSONResponse:
    return JSONResponse(status_code=401, content={"message": message, "error": True, "success": False})


class FakeBackend:
    """In-memory stand-in for the grocery API with knobs for failure scenarios."""

    def __init__(self):
        self.products: Dict[str, dict] = {p["_id"]: p for p in (PRODUCT_A, PRODUCT_B)}
        self.cart: List[dict] = []
        self.access_tokens = set()
        self.refresh_tokens = set()
        self.users = {"shopper@example.com": "secret123"}
        self._ids = itertools.count(1)
        # (method, path, authorization header) for every request received
        self.requests: List[tuple] = []
        self.bodies: List[tuple] = []
        self.refresh_calls = 0
        self.refresh_delay = 0.05
        self.rotate_refresh_token = False
        self.reject_all_protected = False
        self.fail_status: Dict[str, int] = {}
        self.app = self._build_app()

    # ----- helpers used by tests -----

    def issue_tokens(self) -> tuple:
        n = next(self._ids)
        access, refresh = f"access-{n}", f"refresh-{n}"
        self.access_tokens.add(access)
        self.refresh_tokens.add(refresh)
        return access, refresh

    def expire_access_tokens(self) -> None:
        self.access_tokens.clear()

    def add_line(self, product_id: str, quantity: int, variation_id: Optional[str] = None,
                 selected_size: Optional[str] = None) -> str:
        line_id = f"line-{next(self._ids)}"
        self.cart.append({
            "_id": line_id,
            "productId": product_id,
            "variationId": variation_id,
            "selectedSize": selected_size,
            "quantity": quantity,
        })
        return line_id

    def calls(self, path: str) -> List[tuple]:
        return [r for r in self.requests if r[1] == path]

    # ----- app -----

    def _authorized(self, request: Request) -> bool:
        if self.reject_all_protected:
            return False
        header = request.headers.get("authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer "):] in self.access_tokens

    def _populated_cart(self) -> List[dict]:
        return [dict(line, productId=self.products[line["productId"]]) for line in self.cart]

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.requests.append((request.method, request.url.path, request.headers.get("authorization")))
            status = backend.fail_status.get(request.url.path)
            if status:
                return JSONResponse(status_code=status, content={"message": "Something broke", "success": False})
            return await call_next(request)

        @app.get("/api/health")
        async def health():
            return {"ok": True}

        @app.post("/api/user/login")
        async def login(request: Request):
            body = await request.json()
            if backend.users.get(body.get("email")) != body.get("password"):
                return JSONResponse(status_code=400, content={"message": "Check your password", "success": False})
            access, refresh = backend.issue_tokens()
            return {"message": "Login successfully", "success": True,
                    "data": {"accesstoken": access, "refreshToken": refresh}}

        @app.get("/api/user/logout")
        async def logout(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            return {"message": "Logout successfully", "success": True}

        @app.post("/api/user/refresh-token")
        async def refresh_token(request: Request):
            backend.refresh_calls += 1
            body = await request.json()
            await asyncio.sleep(backend.refresh_delay)
            token = body.get("refreshToken")
            if token not in backend.refresh_tokens:
                return _unauthorized("Invalid token")
            n = next(backend._ids)
            access = f"access-{n}"
            backend.access_tokens.add(access)
            data = {"accesstoken": access}
            if backend.rotate_refresh_token:
                backend.refresh_tokens.discard(token)
                data["refreshToken"] = f"refresh-{n}"
                backend.refresh_tokens.add(data["refreshToken"])
            return {"message": "New access token generated", "success": True, "data": data}

        @app.get("/api/user/user-details")
        async def user_details(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            return {"message": "user details", "success": True,
                    "data": {"_id": "user-1", "name": "Asha", "email": "shopper@example.com"}}

        @app.get("/api/cart/get")
        async def get_cart(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            return {"data": backend._populated_cart(), "error": False, "success": True}

        @app.post("/api/cart/create")
        async def add_to_cart(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            body = await request.json()
            backend.bodies.append(("create", body))
            line_id = backend.add_line(body["productId"], 1, body.get("variationId"), body.get("selectedSize"))
            return {"data": {"_id": line_id}, "message": "Item add successfully", "success": True}

        @app.put("/api/cart/update-qty")
        async def update_qty(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            body = await request.json()
            backend.bodies.append(("update-qty", body))
            for line in list(backend.cart):
                if line["_id"] == body["_id"]:
                    if body["qty"] <= 0:
                        backend.cart.remove(line)
                    else:
                        line["quantity"] = body["qty"]
                    return {"message": "Update cart", "success": True, "data": body}
            return JSONResponse(status_code=400, content={"message": "Cart item not found", "success": False})

        @app.delete("/api/cart/delete-cart-item")
        async def delete_item(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            body = await request.json()
            backend.bodies.append(("delete", body))
            backend.cart = [line for line in backend.cart if line["_id"] != body["_id"]]
            return {"message": "Item remove", "success": True, "data": body}

        @app.get("/api/address/get")
        async def addresses(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            return {"success": True, "data": [
                {"_id": "addr-1", "address_line": "12 MG Road", "city": "Pune", "state": "MH",
                 "pincode": 411001, "country": "India", "mobile": "9999999999", "status": True},
                {"_id": "addr-2", "address_line": "Old flat", "city": "Pune", "state": "MH",
                 "pincode": "411002", "country": "India", "status": False},
            ]}

        @app.get("/api/order/order-list")
        async def orders(request: Request):
            if not backend._authorized(request):
                return _unauthorized()
            return {"success": True, "data": [
                {"_id": "o-1", "orderId": "ORD-1", "payment_status": "CASH ON DELIVERY",
                 "subTotalAmt": 250, "totalAmt": 230},
            ]}

        @app.get("/api/category/get")
        async def categories():
            return {"success": True, "data": [{"_id": "cat-1", "name": "Staples", "image": "c.png"}]}

        @app.post("/api/product/get")
        async def products(request: Request):
            body = await request.json()
            backend.bodies.append(("products", body))
            return {"success": True, "data": list(backend.products.values()), "totalCount": len(backend.products)}

        @app.post("/api/product/search-product")
        async def search(request: Request):
            body = await request.json()
            term = body.get("search", "").lower()
            found = [p for p in backend.products.values() if term in p["name"].lower()]
            return {"success": True, "data": found}

        @app.post("/api/product/get-product-by-category")
        async def by_category(request: Request):
            body = await request.json()
            backend.bodies.append(("by-category", body))
            found = list(backend.products.values()) if body.get("id") == "cat-1" else []
            return {"success": True, "data": found}

        @app.post("/api/product/get-product-details")
        async def product_details(request: Request):
            body = await request.json()
            product = backend.products.get(body.get("productId"))
            if not product:
                return JSONResponse(status_code=404, content={"message": "Product not found", "success": False})
            return {"success": True, "data": product}

        @app.get("/api/banner/get-active")
        async def banners():
            return {"success": True, "data": [{"_id": "ban-1", "title": "Fresh deals", "image": "b.png"}]}

        return app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        API_BASE_URL="http://testserver",
        REQUEST_TIMEOUT_SECONDS=5.0,
        MAX_REFRESH_ATTEMPTS=3,
        ERROR_DEDUP_WINDOW_SECONDS=2.0,
        SESSION_DATABASE_URL="sqlite://",
        LOGIN_PATH="/login",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def redirects() -> List[str]:
    return []


@pytest.fixture
def notifications() -> List[tuple]:
    return []


@pytest.fixture
async def client(settings, backend, redirects, notifications):
    # Use ASGITransport for httpx 0.28+
    transport = httpx.ASGITransport(app=backend.app)
    quickcart = create_client(
        settings=settings,
        transport=transport,
        session_store=SessionStore(),
        on_login_required=redirects.append,
        notification_sink=lambda level, message: notifications.append((level, message)),
    )
    yield quickcart
    await quickcart.aclose()


@pytest.fixture
async def logged_in(client, backend):
    access, refresh = backend.issue_tokens()
    client.auth.restore_session(access, refresh)
    return client
