import logging
from typing import Any, Callable, List, Optional

from pydantic import ValidationError as SchemaError

from quickcart.schemas.address import Address
from quickcart.schemas.order import Order
from quickcart.schemas.result import ApiResult
from quickcart.schemas.user import UserDetails
from quickcart.services.auth import AuthClient
from quickcart.utils.errors import ApiError

logger = logging.getLogger(__name__)

USER_DETAILS = "/api/user/user-details"
GET_ADDRESSES = "/api/address/get"
GET_ORDERS = "/api/order/order-list"


class AccountService:
    """Reads of the logged-in user's profile, addresses and orders."""

    def __init__(self, auth: AuthClient):
        self.auth = auth
        self.user: Optional[UserDetails] = None
        self.addresses: List[Address] = []
        self.orders: List[Order] = []

    def clear_local(self) -> None:
        self.user = None
        self.addresses = []
        self.orders = []

    async def _fetch(self, what: str, url: str, parse: Callable[[Any], Any]) -> ApiResult:
        if not self.auth.is_authenticated:
            logger.debug("Not fetching %s: user not authenticated", what)
            return ApiResult.not_authenticated()
        try:
            body = await self.auth.get(url)
        except ApiError as e:
            logger.error("Error fetching %s: %s", what, e)
            return ApiResult.failed(e.message)

        if isinstance(body, dict) and body.get("authenticated") is False:
            logger.info("Authentication required to fetch %s", what)
            return ApiResult.not_authenticated()
        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            return ApiResult.failed(message or f"Could not fetch {what}")
        try:
            data = parse(body.get("data"))
        except SchemaError as e:
            logger.error("Invalid %s payload: %s", what, e)
            return ApiResult.failed(f"Invalid {what} data received")
        return ApiResult.ok(data=data, message=body.get("message"))

    async def fetch_user_details(self) -> ApiResult:
        """Profile fetch; a not-authenticated result also means the tokens are no longer valid."""
        result = await self._fetch("user details", USER_DETAILS, UserDetails.model_validate)
        if result.success:
            self.user = result.data
        elif result.authenticated is False:
            self.clear_local()
        return result

    async def fetch_addresses(self) -> ApiResult:
        result = await self._fetch(
            "addresses", GET_ADDRESSES,
            lambda data: [Address.model_validate(a) for a in (data or [])],
        )
        if result.success:
            self.addresses = [a for a in result.data if a.status]
        return result

    async def fetch_orders(self) -> ApiResult:
        result = await self._fetch(
            "orders", GET_ORDERS,
            lambda data: [Order.model_validate(o) for o in (data or [])],
        )
        if result.success:
            self.orders = result.data
        return result
