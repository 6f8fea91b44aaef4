"""Callable-function request/response types and the wire protocol they map to."""

from dataclasses import dataclass, field
from typing import Any, Optional

# error code -> (wire status, HTTP status)
CALLABLE_ERROR_STATUS = {
    "invalid-argument": ("INVALID_ARGUMENT", 400),
    "unauthenticated": ("UNAUTHENTICATED", 401),
    "resource-exhausted": ("RESOURCE_EXHAUSTED", 429),
    "internal": ("INTERNAL", 500),
}


@dataclass
class AuthContext:
    """Verified caller identity."""
    uid: str
    token: dict = field(default_factory=dict)


@dataclass
class CallableRequest:
    """One invocation: optional identity plus the decoded data payload."""
    data: dict
    auth: Optional[AuthContext] = None


class HttpsError(Exception):
    """Caller-facing failure of a callable function."""

    def __init__(self, code: str, message: str, details: Any = None):
        if code not in CALLABLE_ERROR_STATUS:
            raise ValueError(f"Unknown callable error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @property
    def http_status(self) -> int:
        return CALLABLE_ERROR_STATUS[self.code][1]

    def to_dict(self) -> dict:
        error = {"status": CALLABLE_ERROR_STATUS[self.code][0], "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


def unwrap_callable_body(body: Any) -> dict:
    """
    Extract the data payload from a callable request body.

    Clients send {"data": {...}}; a bare object is accepted as the payload itself.
    """
    if not isinstance(body, dict):
        return {}
    if "data" in body:
        data = body["data"]
        return data if isinstance(data, dict) else {}
    return body
