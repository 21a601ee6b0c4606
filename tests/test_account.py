import httpx
import pytest

from quickcart.main import create_client
from quickcart.models.session import SessionStore


class TestAccount:

    @pytest.mark.asyncio
    async def test_user_details(self, logged_in):
        result = await logged_in.account.fetch_user_details()

        assert result.success is True
        assert logged_in.account.user.id == "user-1"
        assert logged_in.account.user.email == "shopper@example.com"

    @pytest.mark.asyncio
    async def test_only_active_addresses_are_kept(self, logged_in):
        result = await logged_in.account.fetch_addresses()

        assert len(result.data) == 2
        assert [a.id for a in logged_in.account.addresses] == ["addr-1"]
        assert logged_in.account.addresses[0].pincode == "411001"

    @pytest.mark.asyncio
    async def test_orders(self, logged_in):
        await logged_in.account.fetch_orders()

        order = logged_in.account.orders[0]
        assert order.orderId == "ORD-1"
        assert order.totalAmt == 230.0

    @pytest.mark.asyncio
    async def test_reads_are_skipped_without_session(self, client, backend):
        results = [
            await client.account.fetch_user_details(),
            await client.account.fetch_addresses(),
            await client.account.fetch_orders(),
        ]

        assert all(r.authenticated is False for r in results)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_rejected_session_clears_user(self, logged_in, backend):
        await logged_in.account.fetch_user_details()
        backend.expire_access_tokens()
        backend.refresh_tokens.clear()

        result = await logged_in.account.fetch_user_details()

        assert result.authenticated is False
        assert logged_in.account.user is None


class TestClientLifecycle:

    @pytest.mark.asyncio
    async def test_login_loads_user_data(self, client, backend):
        backend.add_line("prod-a", 2)

        result = await client.login("shopper@example.com", "secret123")

        assert result.success is True
        assert client.account.user.name == "Asha"
        assert client.cart.summary.totalDiscountedPrice == 180.0
        assert len(client.account.orders) == 1

    @pytest.mark.asyncio
    async def test_logout_drops_local_state(self, logged_in, backend):
        backend.add_line("prod-a", 1)
        await logged_in.refresh_user_data()

        await logged_in.logout()

        assert logged_in.cart.items == []
        assert logged_in.cart.summary.totalQuantity == 0
        assert logged_in.account.user is None
        assert logged_in.account.addresses == []

    @pytest.mark.asyncio
    async def test_server_health(self, client):
        assert await client.is_server_up() is True

    @pytest.mark.asyncio
    async def test_image_url_uses_api_base(self, client):
        assert client.image_url("uploads/rice.png") == "http://testserver/uploads/rice.png"
        assert client.image_url(None) is None

    @pytest.mark.asyncio
    async def test_closing_the_client_disposes_the_session_store(self, settings, backend):
        class RecordingStore(SessionStore):
            disposed = False

            def dispose(self):
                self.disposed = True

        store = RecordingStore()
        transport = httpx.ASGITransport(app=backend.app)
        async with create_client(settings=settings, transport=transport, session_store=store) as quickcart:
            assert await quickcart.is_server_up() is True

        assert store.disposed is True
        assert quickcart.http.is_closed
