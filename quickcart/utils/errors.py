from typing import Any, Optional

import httpx


class QuickCartError(Exception):
    """Base class for every error raised by the client."""


class NetworkError(QuickCartError):
    """The request never produced a response (connection failure or timeout)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    @classmethod
    def from_exception(cls, exc: httpx.TransportError, url: Optional[str] = None) -> "NetworkError":
        if isinstance(exc, httpx.TimeoutException):
            return cls(f"Request timed out: {url}" if url else "Request timed out", url=url)
        return cls(str(exc) or exc.__class__.__name__, url=url)


class ApiError(QuickCartError):
    """The server answered with a non-2xx status."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, status_code: int, message: Optional[str] = None, payload: Any = None, url: Optional[str] = None):
        self.status_code = status_code
        self.message = message or self.default_message
        self.payload = payload
        self.url = url
        super().__init__(f"{status_code}: {self.message}")

    @staticmethod
    def error_class_for(status_code: int) -> type:
        if status_code in (400, 422):
            return ValidationError
        if status_code == 401:
            return AuthenticationError
        if status_code == 403:
            return PermissionDeniedError
        if status_code == 404:
            return NotFoundError
        if status_code >= 500:
            return ServerError
        return ApiError

    @classmethod
    def from_response(cls, response: httpx.Response, payload: Any = None) -> "ApiError":
        message = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("detail")
            if not isinstance(message, str):
                message = None
        error_cls = cls.error_class_for(response.status_code)
        return error_cls(response.status_code, message, payload=payload, url=str(response.request.url))


class ValidationError(ApiError):
    default_message = "Invalid data provided. Please check your inputs."


class AuthenticationError(ApiError):
    default_message = "Authentication required"


class SessionExpiredError(AuthenticationError):
    default_message = "Session expired. Please log in again."

    def __init__(self, message: Optional[str] = None, url: Optional[str] = None):
        super().__init__(401, message, url=url)


class PermissionDeniedError(ApiError):
    default_message = "You don't have permission to perform this action."


class NotFoundError(ApiError):
    default_message = "The requested resource was not found."


class ServerError(ApiError):
    default_message = "Server error. Please try again later."
