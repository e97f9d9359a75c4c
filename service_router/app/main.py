"""
Edge router service.
"""

from typing import Dict, Optional

from fastapi import Request as HTTPRequest, Response

from shared.base_service import ROUTE_SCOPE_KEY, UNMATCHED_ROUTE, BaseService
from shared.config import RouterConfig, get_config
from shared.logging import get_route

from .adapters.origin_client import OriginClient
from .adapters.task_invoker import TaskInvoker
from .caching.cache_store import CacheStore
from .domain.endpoints import Listener, env_listener
from .domain.handlers import (
    CacheAsideHandler,
    IntrospectionHandler,
    OriginBackfillHandler,
    TaskTriggerHandler,
)
from .domain.models import Endpoint, ExecutionScope, Request, ResponseEnvelope
from .domain.router import RequestRouter
from .domain.routing import ForwardRoute, HandlerRoute, RouteTable

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


class RouterService(BaseService):
    """Edge router service implementation."""

    def __init__(self, config: Optional[RouterConfig] = None):
        super().__init__(config or get_config())

        self.listeners = self._build_listeners()
        self.cache = CacheStore(
            self.listeners["mycache"],
            self.config.redis_password.get_secret_value(),
        )
        self.nginx_origin = OriginClient("nginx", self.listeners["nginx"])
        self.custom_origin = OriginClient("custom web server", self.listeners["custom"])
        self.task_invoker = TaskInvoker(
            cluster=self.config.task_cluster,
            task_definition=self.config.task_definition,
            region=self.config.aws_region,
            launch_type=self.config.task_launch_type,
        )
        # Only /run gets this scope; no other route can launch tasks.
        self.run_scope = ExecutionScope(
            name="runRoute",
            role_arn=self.config.task_role_arn,
            policy_arns=tuple(self.config.task_policy_arns),
        )

        self.route_table = self._build_route_table()
        self.router = RequestRouter(
            self.route_table,
            metrics=self.metrics,
            redact_errors=self.config.error_detail_mode == "redacted",
        )

        self._setup_router_routes()
        self.app.state.router_service = self

    def _build_listeners(self) -> Dict[str, Listener]:
        cfg = self.config
        return {
            "mycache": env_listener("mycache", Endpoint(cfg.cache_host, cfg.cache_port)),
            "nginx": env_listener("nginx", Endpoint(cfg.nginx_host, cfg.nginx_port)),
            "nginx2": env_listener("nginx2", Endpoint(cfg.nginx2_host, cfg.nginx2_port)),
            "custom": env_listener("custom", Endpoint(cfg.custom_host, cfg.custom_port)),
        }

    def _build_route_table(self) -> RouteTable:
        return RouteTable([
            HandlerRoute(
                "/test",
                "GET",
                IntrospectionHandler([self.listeners["nginx"], self.listeners["nginx2"]]),
            ),
            HandlerRoute("/", "GET", CacheAsideHandler(self.cache, self.nginx_origin, self.metrics)),
            HandlerRoute(
                "/run",
                "GET",
                TaskTriggerHandler(self.task_invoker, self.metrics),
                scope=self.run_scope,
            ),
            HandlerRoute("/custom", "GET", OriginBackfillHandler(self.cache, self.custom_origin)),
            ForwardRoute("/nginx", self.listeners["nginx"]),
        ])

    def _setup_router_routes(self):
        """Send everything not claimed by the service shell to the router."""

        @self.app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
        async def dispatch(request: HTTPRequest) -> Response:
            inbound = Request(
                path=request.url.path,
                method=request.method,
                headers=request.headers.items(),
                body=await request.body() or None,
                query=request.url.query,
            )
            envelope = await self.router.handle(inbound)
            request.scope[ROUTE_SCOPE_KEY] = get_route() or UNMATCHED_ROUTE
            return to_response(envelope)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report cache reachability."""
        try:
            await self.cache.ping()
            return {"redis": "ok"}
        except Exception as exc:
            self.logger.warning("Cache health check failed", error=str(exc))
            return {"redis": "error"}


def to_response(envelope: ResponseEnvelope) -> Response:
    """Convert a response envelope into a Starlette response."""
    response = Response(content=envelope.body_bytes(), status_code=envelope.status_code)
    for name, value in envelope.header_items():
        response.headers.append(name, value)
    return response


def create_app(config: Optional[RouterConfig] = None):
    """Create the router application."""
    service = RouterService(config)
    return service.app


def main():
    RouterService().run()


if __name__ == "__main__":
    main()
