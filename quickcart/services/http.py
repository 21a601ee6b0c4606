from typing import Any, Optional
import logging

import httpx

from quickcart.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def build_http_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Base client every call goes through.

    The cookie jar is kept across requests, which is how the server's
    session cookies ride along with the bearer token.
    """
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL,
        headers=DEFAULT_HEADERS,
        timeout=httpx.Timeout(settings.REQUEST_TIMEOUT_SECONDS),
        transport=transport,
        follow_redirects=False,
    )


def normalize_path(url: str) -> str:
    if not url:
        raise ValueError("Endpoint path required")
    if url.startswith(("http://", "https://")) or url.startswith("/"):
        return url
    return "/" + url


def parse_body(response: httpx.Response) -> Any:
    """Decode a JSON body, or describe a non-JSON one without raising."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            logger.error("Invalid JSON body from %s", response.request.url)
    else:
        logger.error(
            "Non-JSON response received from %s: %s",
            response.request.url, response.text[:150],
        )
    return {
        "success": False,
        "error": True,
        "message": f"Received non-JSON response: {response.status_code} {response.reason_phrase}".strip(),
        "data": None,
    }


async def check_server_health(client: httpx.AsyncClient, path: str = "/api/health") -> bool:
    try:
        response = await client.get(path, timeout=5.0)
    except httpx.TransportError as e:
        logger.error("Server health check failed: %s", e)
        return False
    logger.info("Server health check response: %s", response.status_code)
    return response.is_success
