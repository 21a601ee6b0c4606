from pydantic import BaseModel
from typing import Any, Optional


class ApiResult(BaseModel):
    """Outcome of a gateway operation.

    ``authenticated`` is only set (to False) when the call was skipped or
    answered as "not logged in"; callers render a logged-out state from it
    instead of handling an exception.
    """

    success: bool
    data: Any = None
    authenticated: Optional[bool] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ApiResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def not_authenticated(cls) -> "ApiResult":
        return cls(success=False, authenticated=False, message="Authentication required")

    @classmethod
    def failed(cls, error: Optional[str] = None) -> "ApiResult":
        return cls(success=False, error=error)
