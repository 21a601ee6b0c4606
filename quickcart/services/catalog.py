import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError as SchemaError

from quickcart.schemas.banner import Banner
from quickcart.schemas.product import Category, Product
from quickcart.schemas.result import ApiResult
from quickcart.services.auth import AuthClient
from quickcart.utils.errors import ApiError
from quickcart.utils.notifications import Notifier

logger = logging.getLogger(__name__)

GET_CATEGORIES = "/api/category/get"
GET_PRODUCTS = "/api/product/get"
SEARCH_PRODUCTS = "/api/product/search-product"
PRODUCTS_BY_CATEGORY = "/api/product/get-product-by-category"
PRODUCT_DETAILS = "/api/product/get-product-details"
ACTIVE_BANNERS = "/api/banner/get-active"


def _products(data: Any):
    return [Product.model_validate(p) for p in (data or [])]


class CatalogService:
    """Public catalog reads; these endpoints never carry credentials."""

    def __init__(self, auth: AuthClient, notifier: Optional[Notifier] = None):
        self.auth = auth
        self.notifier = notifier or Notifier()

    async def _read(self, method: str, url: str, parse: Callable[[Any], Any], json: Any = None) -> ApiResult:
        try:
            body = await self.auth.request(method, url, json=json)
        except ApiError as e:
            self.notifier.api_error(e)
            return ApiResult.failed(e.message)
        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            return ApiResult.failed(message)
        try:
            data = parse(body.get("data"))
        except SchemaError as e:
            logger.error("Invalid catalog payload from %s: %s", url, e)
            return ApiResult.failed("Invalid data received")
        return ApiResult.ok(data=data, message=body.get("message"))

    async def get_categories(self) -> ApiResult:
        return await self._read("GET", GET_CATEGORIES, lambda data: [Category.model_validate(c) for c in (data or [])])

    async def get_products(self, page: int = 1, limit: int = 10) -> ApiResult:
        return await self._read("POST", GET_PRODUCTS, _products, json={"page": page, "limit": limit})

    async def search_products(self, search: str, page: int = 1, limit: int = 10) -> ApiResult:
        return await self._read("POST", SEARCH_PRODUCTS, _products,
                                json={"search": search.strip(), "page": page, "limit": limit})

    async def get_products_by_category(self, category_id: str) -> ApiResult:
        return await self._read("POST", PRODUCTS_BY_CATEGORY, _products, json={"id": category_id})

    async def get_product_details(self, product_id: str) -> ApiResult:
        return await self._read("POST", PRODUCT_DETAILS, Product.model_validate, json={"productId": product_id})

    async def get_active_banners(self) -> ApiResult:
        return await self._read("GET", ACTIVE_BANNERS, lambda data: [Banner.model_validate(b) for b in (data or [])])
