"""
Router domain: request models, listeners, the route table and handlers.
"""

from .models import (
    PAGE_CACHE_KEY,
    Endpoint,
    ExecutionScope,
    HandlerContext,
    Request,
    ResponseEnvelope,
    TaskRunResult,
)
from .endpoints import Listener, env_listener, static_listener
from .routing import ForwardRoute, HandlerRoute, RouteTable
from .router import RequestRouter

__all__ = [
    "PAGE_CACHE_KEY",
    "Endpoint",
    "ExecutionScope",
    "HandlerContext",
    "Request",
    "ResponseEnvelope",
    "TaskRunResult",
    "Listener",
    "env_listener",
    "static_listener",
    "ForwardRoute",
    "HandlerRoute",
    "RouteTable",
    "RequestRouter",
]
