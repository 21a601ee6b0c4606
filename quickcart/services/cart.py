import logging
from typing import Any, List, Optional

from pydantic import ValidationError as SchemaError

from quickcart.schemas.cart import (
    CartItemDelete,
    CartItemIn,
    CartLineItem,
    CartQtyUpdate,
    CartSummary,
    LinePrice,
)
from quickcart.schemas.product import Product, Variation
from quickcart.schemas.result import ApiResult
from quickcart.services.auth import AuthClient
from quickcart.services.pricing import price_line, summarize
from quickcart.utils.errors import ApiError
from quickcart.utils.notifications import Notifier

logger = logging.getLogger(__name__)

ADD_TO_CART = "/api/cart/create"
GET_CART = "/api/cart/get"
UPDATE_CART_QTY = "/api/cart/update-qty"
DELETE_CART_ITEM = "/api/cart/delete-cart-item"


def normalize_quantity(qty: Any) -> int:
    """Accept a plain number or anything carrying a ``quantity``."""
    if isinstance(qty, dict) and "quantity" in qty:
        qty = qty["quantity"]
    elif not isinstance(qty, (int, float, str)) and hasattr(qty, "quantity"):
        qty = qty.quantity
    if isinstance(qty, bool):
        raise ValueError("Quantity must be a number")
    if isinstance(qty, float) and not qty.is_integer():
        raise ValueError(f"Quantity must be a whole number: {qty!r}")
    try:
        quantity = int(qty)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Invalid quantity: {qty!r}")
    if quantity < 0:
        raise ValueError("Quantity cannot be negative")
    return quantity


def _not_authenticated(body: Any) -> bool:
    return isinstance(body, dict) and body.get("authenticated") is False


class CartService:
    """Mediates every cart write and keeps the local cart equal to the server's.

    Writes are never applied optimistically: each successful mutation is
    followed by a full refetch that replaces the local items.
    """

    def __init__(self, auth: AuthClient, notifier: Optional[Notifier] = None):
        self.auth = auth
        self.notifier = notifier or Notifier()
        self.items: List[CartLineItem] = []
        self.summary = CartSummary()

    def _replace_items(self, items: List[CartLineItem]) -> None:
        self.items = items
        self.summary = summarize(items)

    def clear_local(self) -> None:
        self._replace_items([])

    def line_prices(self) -> List[LinePrice]:
        return [price_line(item) for item in self.items]

    def find_item(self, product_id: str, variation_id: Optional[str] = None,
                  selected_size: Optional[str] = None) -> Optional[CartLineItem]:
        for item in self.items:
            if item.product.id != str(product_id):
                continue
            if variation_id is None and selected_size is None:
                return item
            if (variation_id and item.variationId == str(variation_id)) or (
                selected_size and item.selectedSize == selected_size
            ):
                return item
        return None

    async def fetch_cart(self) -> ApiResult:
        if not self.auth.is_authenticated:
            logger.debug("Not fetching cart: user not authenticated")
            return ApiResult.not_authenticated()

        try:
            body = await self.auth.get(GET_CART)
        except ApiError as e:
            logger.error("Error fetching cart: %s", e)
            return ApiResult.failed(e.message)
        if _not_authenticated(body):
            logger.info("Authentication required to fetch cart")
            return ApiResult.not_authenticated()
        if not isinstance(body, dict) or not body.get("success"):
            return ApiResult.failed(body.get("message") if isinstance(body, dict) else None)

        try:
            items = [CartLineItem.model_validate(raw) for raw in (body.get("data") or [])]
        except SchemaError as e:
            logger.error("Cart payload could not be parsed: %s", e)
            return ApiResult.failed("Invalid cart data received")

        self._replace_items(items)
        logger.debug("Cart synced: %s items, total qty %s", len(items), self.summary.totalQuantity)
        return ApiResult.ok(data=items, message=body.get("message"))

    async def add_item(self, product: Product, variation: Optional[Variation] = None) -> ApiResult:
        if not self.auth.is_authenticated:
            logger.debug("Not adding to cart: user not authenticated")
            return ApiResult.not_authenticated()
        if product.hasVariations and variation is None:
            return ApiResult.failed("Please select a size for this product")
        if variation is not None and variation.stock is not None and variation.stock <= 0:
            return ApiResult.failed(f"Sorry, {variation.size} is out of stock")
        if variation is None and product.stock is not None and product.stock <= 0:
            return ApiResult.failed("Sorry, this product is out of stock")

        payload = CartItemIn(
            productId=product.id,
            variationId=variation.id if variation else None,
            selectedSize=variation.size if variation else None,
        )
        return await self._mutate("add", ADD_TO_CART, "POST", payload.model_dump(exclude_none=True),
                                  fallback_message="Added to cart")

    async def set_quantity(self, line_item_id: str, quantity: Any) -> ApiResult:
        qty = normalize_quantity(quantity)
        if not self.auth.is_authenticated:
            logger.debug("Not updating cart: user not authenticated")
            return ApiResult.not_authenticated()

        payload = CartQtyUpdate(id=line_item_id, qty=qty)
        logger.debug("Updating cart item %s to quantity %s", line_item_id, qty)
        return await self._mutate("update", UPDATE_CART_QTY, "PUT", payload.model_dump(by_alias=True))

    async def remove_item(self, line_item_id: str) -> ApiResult:
        if not self.auth.is_authenticated:
            logger.debug("Not deleting cart item: user not authenticated")
            return ApiResult.not_authenticated()

        payload = CartItemDelete(id=line_item_id)
        return await self._mutate("delete", DELETE_CART_ITEM, "DELETE", payload.model_dump(by_alias=True),
                                  fallback_message="Item removed")

    async def _mutate(self, action: str, url: str, method: str, payload: dict,
                      fallback_message: Optional[str] = None) -> ApiResult:
        try:
            body = await self.auth.request(method, url, json=payload)
        except ApiError as e:
            self.notifier.api_error(e)
            return ApiResult.failed(e.message)

        if _not_authenticated(body):
            logger.info("Authentication required to %s cart item", action)
            return ApiResult.not_authenticated()
        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            return ApiResult.failed(message)

        if fallback_message is not None:
            self.notifier.success(body.get("message") or fallback_message)
        await self.fetch_cart()
        return ApiResult.ok(data=body.get("data"), message=body.get("message"))
