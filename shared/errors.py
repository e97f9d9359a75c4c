"""
Shared error handling for the edge router.
"""

import traceback
from typing import Any, Dict, Iterable, Optional

from opentelemetry import trace
from pydantic import BaseModel


# Fields kept by serialize_failure() when redaction is requested.
REDACTED_FIELD_ALLOW_LIST = ("message", "name", "code")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class RouterException(Exception):
    """Base exception for edge router failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class RouteNotFound(RouterException):
    """No declared route matches the request."""

    def __init__(self, path: str, method: str):
        super().__init__(
            "ROUTE_NOT_FOUND",
            f"No route for {method} {path}",
            {"path": path, "method": method},
        )


class UpstreamUnavailable(RouterException):
    """Cache, origin or task pool call failed."""

    def __init__(self, service: str, message: str = "Upstream unavailable", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("UPSTREAM_UNAVAILABLE", f"{service}: {message}", details)


class EndpointResolutionError(UpstreamUnavailable):
    """A listener endpoint could not be resolved."""

    def __init__(self, listener: str, message: str = "Endpoint resolution failed", details: Optional[Dict[str, Any]] = None):
        self.listener = listener
        super().__init__(listener, message, details)
        self.code = "ENDPOINT_RESOLUTION_ERROR"


class HandlerInternalError(RouterException):
    """Unexpected failure inside a route handler."""

    def __init__(self, message: str = "Handler error", details: Optional[Dict[str, Any]] = None):
        super().__init__("HANDLER_INTERNAL_ERROR", message, details)


class RouteTableError(RouterException):
    """Route table is malformed. Raised at startup only."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("ROUTE_TABLE_ERROR", message, details)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def serialize_failure(exc: BaseException, allow: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Serialize an exception into a generic key/value mapping.

    Without ``allow`` every instance attribute is included along with
    ``message``, ``name`` and the formatted ``stack``, so internal fields
    such as request details or upstream bodies reach the caller. Pass
    ``REDACTED_FIELD_ALLOW_LIST`` (or another allow-list) to restrict it.
    """
    result: Dict[str, Any] = {
        "message": _jsonable(getattr(exc, "message", None) or str(exc) or type(exc).__name__),
        "name": type(exc).__name__,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    for key, value in vars(exc).items():
        if key.startswith("_") or key in ("message",):
            continue
        result[key] = _jsonable(value)

    if allow is not None:
        allowed = set(allow)
        result = {k: v for k, v in result.items() if k in allowed}

    return result
