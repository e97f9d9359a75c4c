"""
Base service class for edge router services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Dict, Optional
import time
import os

from shared.config import RouterConfig, get_config
from shared.errors import RouterException
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import get_metrics_collector

# ASGI scope key under which the catch-all dispatch records the matched route.
ROUTE_SCOPE_KEY = "edge.route"
UNMATCHED_ROUTE = "unmatched"


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, config: Optional[RouterConfig] = None):
        self.config = config or get_config()
        self.service_name = self.config.service_name
        self.port = self.config.port
        self.logger = get_logger(self.service_name)
        self.metrics = get_metrics_collector(self.service_name)
        self._start_time = time.time()

        configure_logging(self.service_name, self.config.log_level)

        if self.config.enable_tracing:
            from shared.tracing import configure_tracing
            configure_tracing(
                self.service_name,
                self.config.otel_exporter,
                enable_console=self.config.enable_console_tracing,
            )

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Edge Router - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url=None,
            openapi_url="/openapi.json" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get("X-Request-ID"))

            try:
                response = await call_next(request)
                duration = time.time() - start_time

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=self._route_label(request),
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                dependencies = await self._check_dependencies()
                self.metrics.record_health_check("ok")

                return {
                    "service": self.service_name,
                    "status": "ok",
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=self.metrics.export(),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(RouterException)
        async def router_exception_handler(request: Request, exc: RouterException):
            """Handle RouterException raised outside the request router."""
            self.logger.error(
                "Router error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=404 if exc.code == "ROUTE_NOT_FOUND" else 500,
                content=exc.to_response().model_dump()
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _route_label(self, request: Request) -> str:
        """Metrics label for a request: its route template, never the raw path."""
        route = request.scope.get(ROUTE_SCOPE_KEY)
        if route:
            return route
        path = request.url.path
        if any(getattr(app_route, "path", None) == path for app_route in self.app.routes):
            return path
        return UNMATCHED_ROUTE

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
