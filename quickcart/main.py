import asyncio
import logging
import os
from typing import Optional

import httpx

from quickcart.config import Settings, get_settings
from quickcart.models.session import SessionStore, SqlSessionStore
from quickcart.schemas.result import ApiResult
from quickcart.services.account import AccountService
from quickcart.services.auth import AuthClient, LoginRequiredHandler
from quickcart.services.cart import CartService
from quickcart.services.catalog import CatalogService
from quickcart.services.http import build_http_client, check_server_health
from quickcart.utils.notifications import NotificationSink, Notifier
from quickcart.utils.storage import full_image_url

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().LOG_LEVEL),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class QuickCartClient:
    """Everything a front-end needs: session, cart, account and catalog."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings, auth: AuthClient, notifier: Notifier):
        self.http = http
        self.settings = settings
        self.auth = auth
        self.notifier = notifier
        self.cart = CartService(auth, notifier)
        self.account = AccountService(auth)
        self.catalog = CatalogService(auth, notifier)

    async def __aenter__(self) -> "QuickCartClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        try:
            await self.http.aclose()
        finally:
            self.auth.store.dispose()

    async def login(self, email: str, password: str) -> ApiResult:
        result = await self.auth.login(email, password)
        if result.success:
            await self.refresh_user_data()
        return result

    async def logout(self) -> ApiResult:
        try:
            return await self.auth.logout()
        finally:
            self.cart.clear_local()
            self.account.clear_local()

    async def refresh_user_data(self) -> None:
        """Reload user, cart, addresses and orders, or drop them when logged out."""
        if not self.auth.is_authenticated:
            self.cart.clear_local()
            self.account.clear_local()
            return
        await self.account.fetch_user_details()
        await self.cart.fetch_cart()
        await self.account.fetch_addresses()
        await self.account.fetch_orders()

    async def is_server_up(self) -> bool:
        return await check_server_health(self.http)

    def image_url(self, url: Optional[str]) -> Optional[str]:
        return full_image_url(url, self.settings.API_BASE_URL, self.settings.IMAGE_CDN_QUERY)


def create_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    session_store: Optional[SessionStore] = None,
    on_login_required: Optional[LoginRequiredHandler] = None,
    notification_sink: Optional[NotificationSink] = None,
) -> QuickCartClient:
    settings = settings or get_settings()
    http = build_http_client(settings, transport=transport)
    store = session_store if session_store is not None else SqlSessionStore(settings.SESSION_DATABASE_URL)
    auth = AuthClient(http, settings, store=store, on_login_required=on_login_required)
    notifier = Notifier(settings.ERROR_DEDUP_WINDOW_SECONDS, sink=notification_sink)
    return QuickCartClient(http, settings, auth, notifier)


async def _show_cart() -> None:
    async with create_client() as client:
        email = os.environ.get("QUICKCART_EMAIL")
        password = os.environ.get("QUICKCART_PASSWORD")
        if email and password and not client.auth.is_authenticated:
            result = await client.login(email, password)
            if not result.success:
                logger.error("Login failed: %s", result.error)
                return
        result = await client.cart.fetch_cart()
        if result.authenticated is False:
            logger.info("Not logged in; set QUICKCART_EMAIL and QUICKCART_PASSWORD")
            return
        for line, item in zip(client.cart.line_prices(), client.cart.items):
            logger.info("%s x%s: %.2f", item.product.name, item.quantity, line.lineDiscountedPrice)
        summary = client.cart.summary
        logger.info(
            "Items: %s  Total: %.2f  (was %.2f)",
            summary.totalQuantity, summary.totalDiscountedPrice, summary.totalOriginalPrice,
        )


# --- Entry point for local use ---
if __name__ == "__main__":
    configure_logging()
    asyncio.run(_show_cart())
