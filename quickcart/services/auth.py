import asyncio
import logging
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Deque, Optional

import httpx
from pydantic import ValidationError as SchemaError

from quickcart.config import Settings
from quickcart.models.session import AuthSession, SessionStore
from quickcart.schemas.result import ApiResult
from quickcart.schemas.user import LoginSchema, RefreshTokenIn, TokenPair
from quickcart.services.http import normalize_path, parse_body
from quickcart.utils.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    SessionExpiredError,
)
from quickcart.utils.security import get_token_subject

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "/api/user/login"
LOGOUT_ENDPOINT = "/api/user/logout"
REFRESH_TOKEN_ENDPOINT = "/api/user/refresh-token"

# Never carry an Authorization header
PUBLIC_ENDPOINTS = (
    LOGIN_ENDPOINT,
    "/api/user/register",
    REFRESH_TOKEN_ENDPOINT,
    "/api/user/forgot-password",
    "/api/user/reset-password",
    "/api/product/get",
    "/api/product/get-all",
    "/api/product/search-product",
    "/api/product/get-product-by-category",
    "/api/category/get",
    "/api/category/get-all",
    "/api/subcategory/get",
    "/api/banner/get-active",
)

# Resolve with a "not authenticated" payload instead of failing on auth errors
SILENT_AUTH_ROUTES = (
    "/api/cart",
    "/api/user/user-details",
    "/api/address",
)

LoginRequiredHandler = Callable[[str], None]


def is_public_endpoint(url: Optional[str]) -> bool:
    if not url:
        return False
    return any(endpoint in url for endpoint in PUBLIC_ENDPOINTS)


def is_silent_auth_route(url: Optional[str]) -> bool:
    if not url:
        return False
    return any(route in url for route in SILENT_AUTH_ROUTES)


def auth_required_payload() -> dict:
    return {"success": False, "authenticated": False, "message": "Authentication required"}


@dataclass(frozen=True)
class ApiRequest:
    method: str
    url: str
    params: Optional[dict] = None
    json: Any = None


@dataclass(frozen=True)
class RequestEnvelope:
    request: ApiRequest
    retried: bool = False
    # Value of the session's refresh counter when this request triggered an exchange
    attempt: int = 0


class AuthClient:
    """Authenticated request pipeline.

    Attaches the bearer token to protected calls and recovers from expired
    access tokens: a 401 triggers one refresh-token exchange, concurrent 401s
    wait in a FIFO queue for that same exchange, and every waiting request is
    replayed with the new token. The client is the only writer of the
    session store.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Settings, store: Optional[SessionStore] = None,
                 on_login_required: Optional[LoginRequiredHandler] = None):
        self.http = http
        self.settings = settings
        self.store = store if store is not None else SessionStore()
        self.on_login_required = on_login_required
        self.max_refresh_attempts = settings.MAX_REFRESH_ATTEMPTS
        self.refresh_attempts = 0
        self.refresh_count = 0
        self._refresh_task: Optional[asyncio.Task] = None
        self._waiters: Deque[asyncio.Future] = deque()
        self._redirected = False

    # ----- session -----

    @property
    def session(self) -> AuthSession:
        return self.store.get()

    @property
    def is_authenticated(self) -> bool:
        return not self.store.get().is_empty

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None

    @property
    def queued_requests(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def session_expires_at(self) -> Optional[datetime]:
        return self.store.get().access_expires_at

    def restore_session(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Adopt a token pair obtained elsewhere (e.g. a previous app run)."""
        self.store.clear()
        self.store.set(access_token, refresh_token)
        self.refresh_attempts = 0
        self._redirected = False

    async def login(self, email: str, password: str) -> ApiResult:
        credentials = LoginSchema(email=email, password=password)
        try:
            body = await self.request("POST", LOGIN_ENDPOINT, json=credentials.model_dump())
        except ApiError as e:
            logger.warning("Login failed for %s: %s", credentials.email, e.message)
            return ApiResult.failed(e.message)

        if not isinstance(body, dict) or not body.get("success") or not body.get("data"):
            message = body.get("message") if isinstance(body, dict) else None
            return ApiResult.failed(message or "Login failed")
        try:
            tokens = TokenPair.model_validate(body["data"])
        except SchemaError:
            logger.error("Login response did not contain a token pair")
            return ApiResult.failed("Login failed")

        self.restore_session(tokens.accesstoken, tokens.refreshToken)
        logger.info("Logged in as %s", get_token_subject(tokens.accesstoken) or credentials.email)
        return ApiResult.ok(data=tokens.model_dump(), message=body.get("message"))

    async def logout(self) -> ApiResult:
        """Tell the server, then drop the local tokens whatever it answered."""
        try:
            body = await self.request("GET", LOGOUT_ENDPOINT)
        except ApiError as e:
            logger.warning("Logout request failed: %s", e.message)
            return ApiResult.failed(e.message)
        finally:
            self.store.clear()
            self.refresh_attempts = 0
            logger.info("Session cleared")
        if isinstance(body, dict) and body.get("success") is False:
            return ApiResult.failed(body.get("message"))
        return ApiResult.ok(message=body.get("message") if isinstance(body, dict) else None)

    # ----- requests -----

    async def request(self, method: str, url: str, *, params: Optional[dict] = None, json: Any = None) -> Any:
        envelope = RequestEnvelope(ApiRequest(method.upper(), normalize_path(url), params, json))
        return await self._dispatch(envelope)

    async def get(self, url: str, *, params: Optional[dict] = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, *, json: Any = None) -> Any:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, *, json: Any = None) -> Any:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str, *, json: Any = None) -> Any:
        return await self.request("DELETE", url, json=json)

    def _build_request(self, envelope: RequestEnvelope, token: Optional[str] = None) -> httpx.Request:
        call = envelope.request
        headers = {}
        if not is_public_endpoint(call.url):
            token = token or self.store.get().access_token
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return self.http.build_request(call.method, call.url, params=call.params, json=call.json, headers=headers)

    async def _send(self, envelope: RequestEnvelope, token: Optional[str] = None) -> httpx.Response:
        request = self._build_request(envelope, token)
        logger.debug("Request %s %s (retried=%s)", request.method, envelope.request.url, envelope.retried)
        try:
            return await self.http.send(request)
        except httpx.TransportError as e:
            logger.error("Network error for %s: %s", envelope.request.url, e)
            raise NetworkError.from_exception(e, url=envelope.request.url) from e

    async def _dispatch(self, envelope: RequestEnvelope, token: Optional[str] = None) -> Any:
        response = await self._send(envelope, token)
        url = envelope.request.url
        body = parse_body(response)

        if response.is_success:
            if not is_public_endpoint(url):
                self.refresh_attempts = 0
            logger.debug("Response %s from %s", response.status_code, url)
            return body

        logger.debug("Response error %s from %s", response.status_code, url)
        if response.status_code == 401:
            return await self._handle_unauthorized(envelope, response, body)
        raise ApiError.from_response(response, body)

    async def _handle_unauthorized(self, envelope: RequestEnvelope, response: httpx.Response, body: Any) -> Any:
        url = envelope.request.url
        silent = is_silent_auth_route(url)

        if envelope.retried or is_public_endpoint(url):
            if silent:
                return auth_required_payload()
            raise ApiError.from_response(response, body)

        if self.refresh_attempts >= self.max_refresh_attempts:
            logger.warning("Exceeded max refresh attempts (%s), logging out", self.max_refresh_attempts)
            self.store.clear()
            self._redirect_to_login(force=True)
            if silent:
                return auth_required_payload()
            raise SessionExpiredError(url=url)

        # No await between the in-flight check and starting the exchange
        if self._refresh_task is None:
            self.refresh_attempts += 1
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        else:
            logger.info("Token refresh already in progress, queueing %s", url)
        envelope = replace(envelope, retried=True, attempt=self.refresh_attempts)

        # The starting request queues like the others, so cancelling it only
        # drops its own place in line and the exchange carries on
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            token = await waiter
        except AuthenticationError:
            if silent:
                logger.info("Silent auth fail for %s - user not logged in", url)
                return auth_required_payload()
            self._redirect_to_login()
            raise
        return await self._dispatch(envelope, token)

    async def _run_refresh(self) -> None:
        """Single in-flight exchange; its outcome is delivered to the queue in FIFO order."""
        try:
            token = await self._exchange_refresh_token()
        except asyncio.CancelledError:
            self._drain_waiters(cancel=True)
            raise
        except SessionExpiredError as e:
            self.store.clear()
            self._drain_waiters(error=e)
        except Exception as e:
            # Not an auth verdict (network or server failure): keep the tokens
            self._drain_waiters(error=e)
        else:
            self._drain_waiters(token=token)
        finally:
            self._refresh_task = None

    async def _exchange_refresh_token(self) -> str:
        refresh_token = self.store.get().refresh_token
        if not refresh_token:
            raise SessionExpiredError("No refresh token available")

        self.refresh_count += 1
        logger.info("Attempting to refresh token (attempt %s/%s)", self.refresh_attempts, self.max_refresh_attempts)
        payload = RefreshTokenIn(refreshToken=refresh_token).model_dump()
        try:
            # Sent on the bare client so a 401 here never re-enters this pipeline
            response = await self.http.post(REFRESH_TOKEN_ENDPOINT, json=payload)
        except httpx.TransportError as e:
            logger.error("Token refresh network error: %s", e)
            raise NetworkError.from_exception(e, url=REFRESH_TOKEN_ENDPOINT) from e

        body = parse_body(response)
        if response.status_code >= 500:
            raise ApiError.from_response(response, body)
        if not response.is_success or not isinstance(body, dict) or not body.get("success"):
            logger.warning("Token refresh rejected (%s)", response.status_code)
            raise SessionExpiredError("Token refresh failed")
        try:
            tokens = TokenPair.model_validate(body.get("data") or {})
        except SchemaError:
            logger.warning("Token refresh response carried no access token")
            raise SessionExpiredError("Token refresh failed")

        self.store.set(tokens.accesstoken, tokens.refreshToken)
        logger.info("Token refresh successful")
        return tokens.accesstoken

    def _drain_waiters(self, token: Optional[str] = None, error: Optional[Exception] = None,
                       cancel: bool = False) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            # Callers that were cancelled while queued are skipped
            if waiter.done():
                continue
            if cancel:
                waiter.cancel()
            elif error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(token)

    def _redirect_to_login(self, force: bool = False) -> None:
        if self._redirected and not force:
            return
        self._redirected = True
        login_path = self.settings.LOGIN_PATH
        if self.on_login_required is None:
            logger.warning("Authentication required, redirect to %s", login_path)
            return
        logger.info("Authentication failed, redirecting to %s", login_path)
        self.on_login_required(login_path)
