"""
Request router: the single entry point for every inbound request.
"""

import json
from typing import Callable, Dict, Optional

import httpx

from shared.errors import REDACTED_FIELD_ALLOW_LIST, RouteNotFound, serialize_failure
from shared.logging import get_logger, set_route
from shared.metrics import MetricsCollector
from shared.tracing import get_tracer

from ..adapters.forwarder import Forwarder
from .models import HandlerContext, Request, ResponseEnvelope
from .routing import ForwardRoute, HandlerRoute, RouteTable

tracer = get_tracer("router")


class RequestRouter:
    """Dispatches requests over a ``RouteTable``.

    ``handle`` always returns exactly one envelope: unmatched requests get
    ``404``, handler failures of any kind get ``500`` with the serialized
    failure as JSON body, and forwarded requests get whatever the target
    returned.
    """

    def __init__(
        self,
        table: RouteTable,
        *,
        metrics: Optional[MetricsCollector] = None,
        redact_errors: bool = False,
        forwarder_factory: Callable = Forwarder,
    ):
        self.table = table
        self.metrics = metrics
        self.redact_errors = redact_errors
        self.logger = get_logger("router.dispatch")
        self._forwarders: Dict[str, Forwarder] = {
            route.prefix: forwarder_factory(route.target, prefix=route.prefix)
            for route in table.routes
            if isinstance(route, ForwardRoute)
        }

    async def handle(self, request: Request) -> ResponseEnvelope:
        with tracer.start_as_current_span("router.handle") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.path)

            route = self.table.resolve(request.path, request.method)
            if route is None:
                not_found = RouteNotFound(request.path, request.method)
                self.logger.info(not_found.message, path=request.path, method=request.method)
                return ResponseEnvelope(status_code=404, body="")

            if isinstance(route, ForwardRoute):
                set_route(route.prefix)
                return await self._forward(route, request)

            set_route(route.path)
            return await self._invoke(route, request)

    async def _forward(self, route: ForwardRoute, request: Request) -> ResponseEnvelope:
        try:
            envelope = await self._forwarders[route.prefix].forward(request)
        except (httpx.HTTPError, OSError) as exc:
            # Nothing came back from the target, so there is nothing to relay.
            self.logger.error("Forward target unreachable", target=route.target.name, error=str(exc))
            envelope = ResponseEnvelope(status_code=502, body="")
        except Exception as exc:
            self.logger.error("Forward failed", target=route.target.name, error=str(exc), exc_info=True)
            envelope = ResponseEnvelope(status_code=502, body="")

        if self.metrics:
            self.metrics.increment_counter(
                "forwarded_requests_total",
                target=route.target.name,
                status_code=str(envelope.status_code),
            )
        return envelope

    async def _invoke(self, route: HandlerRoute, request: Request) -> ResponseEnvelope:
        context = HandlerContext(route_path=route.path, scope=route.scope)
        try:
            return await route.handler(request, context)
        except Exception as exc:
            return self._failure_response(route, exc)

    def _failure_response(self, route: HandlerRoute, exc: Exception) -> ResponseEnvelope:
        failure = serialize_failure(exc)
        self.logger.error("Handler failed", path=route.path, failure=failure)
        if self.metrics:
            self.metrics.increment_counter(
                "handler_failures_total",
                route=route.path,
                error_type=type(exc).__name__,
            )
            self.metrics.record_error(type(exc).__name__)

        if self.redact_errors:
            failure = {k: v for k, v in failure.items() if k in REDACTED_FIELD_ALLOW_LIST}

        return ResponseEnvelope(
            status_code=500,
            headers={"Content-Type": "application/json"},
            body=json.dumps(failure, default=str),
        )
