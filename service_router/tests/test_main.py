"""
Tests for the edge router service.
"""

import json
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from shared.config import RouterConfig
from shared.errors import RouteTableError, UpstreamUnavailable
from service_router.app.domain.handlers import TaskTriggerHandler
from service_router.app.domain.models import PAGE_CACHE_KEY, TaskRunResult
from service_router.app.domain.routing import ForwardRoute, HandlerRoute
from service_router.app.main import RouterService


class FakeCache:
    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value


@pytest.fixture
def config():
    return RouterConfig(
        redis_password="s3cret",
        nginx_host="nginx.internal",
        nginx2_host="nginx2.internal",
        nginx2_port=8080,
        task_role_arn="arn:aws:iam::123456789012:role/run-route",
    )


@pytest.fixture
def service(config, monkeypatch):
    for name in ("NGINX", "NGINX2", "CUSTOM", "MYCACHE"):
        monkeypatch.delenv(f"EDGE_LISTENER_{name}_HOST", raising=False)
        monkeypatch.delenv(f"EDGE_LISTENER_{name}_PORT", raising=False)
    svc = RouterService(config)
    fake = FakeCache()
    for route in svc.route_table.routes:
        if isinstance(route, HandlerRoute) and hasattr(route.handler, "cache"):
            route.handler.cache = fake
    svc.fake_cache = fake
    return svc


@pytest.fixture
def client(service):
    return TestClient(service.app)


class TestRouterService:
    """Test cases for RouterService wiring."""

    def test_route_table_layout(self, service):
        routes = service.route_table.routes
        handler_keys = [(r.path, r.method) for r in routes if isinstance(r, HandlerRoute)]
        forwards = [r.prefix for r in routes if isinstance(r, ForwardRoute)]

        assert handler_keys == [("/test", "GET"), ("/", "GET"), ("/run", "GET"), ("/custom", "GET")]
        assert forwards == ["/nginx"]

    def test_only_run_route_carries_scope(self, service):
        scoped = [r.path for r in service.route_table.routes if getattr(r, "scope", None) is not None]

        assert scoped == ["/run"]
        run_route = service.route_table.resolve("/run", "GET")
        assert isinstance(run_route.handler, TaskTriggerHandler)
        assert run_route.scope.role_arn == "arn:aws:iam::123456789012:role/run-route"

    def test_missing_redis_password_fails_startup(self, monkeypatch):
        monkeypatch.delenv("EDGE_REDIS_PASSWORD", raising=False)

        with pytest.raises(Exception):
            RouterConfig(_env_file=None)


class TestRouterEndpoints:
    """HTTP-level behavior through the FastAPI app."""

    def test_introspection_reports_endpoints(self, client):
        response = client.get("/test")

        assert response.status_code == 200
        assert response.json() == {
            "nginx": {"hostname": "nginx.internal", "port": 80},
            "nginx2": {"hostname": "nginx2.internal", "port": 8080},
        }

    def test_introspection_follows_listener_changes(self, client, monkeypatch):
        client.get("/test")
        monkeypatch.setenv("EDGE_LISTENER_NGINX_HOST", "10.1.2.3")

        response = client.get("/test")

        assert response.json()["nginx"]["hostname"] == "10.1.2.3"

    def test_root_cache_hit(self, client, service):
        service.fake_cache.data[PAGE_CACHE_KEY] = "<h1>cached</h1>"

        with patch.object(service.nginx_origin, "fetch", new_callable=AsyncMock) as fetch:
            response = client.get("/")

        assert response.status_code == 200
        assert response.text == "<h1>cached</h1>"
        assert response.headers["X-Powered-By"] == "redis"
        fetch.assert_not_called()

    def test_root_cache_miss_backfills(self, client, service):
        with patch.object(service.nginx_origin, "fetch", new_callable=AsyncMock) as fetch:
            fetch.return_value = b"<h1>Welcome to nginx!</h1>"
            response = client.get("/")

        assert response.status_code == 200
        assert response.text == "<h1>Welcome to nginx!</h1>"
        assert response.headers["X-Powered-By"] == "nginx"
        fetch.assert_awaited_once()
        assert service.fake_cache.data[PAGE_CACHE_KEY] == "<h1>Welcome to nginx!</h1>"

    def test_root_origin_failure_returns_500(self, client, service):
        with patch.object(service.nginx_origin, "fetch", new_callable=AsyncMock) as fetch:
            fetch.side_effect = UpstreamUnavailable("nginx", "connection refused")
            response = client.get("/")

        assert response.status_code == 500
        assert response.json()["message"] == "nginx: connection refused"
        assert service.fake_cache.data == {}

    def test_custom_overwrites_root_page(self, client, service):
        service.fake_cache.data[PAGE_CACHE_KEY] = "nginx page"

        with patch.object(service.custom_origin, "fetch", new_callable=AsyncMock) as fetch:
            fetch.return_value = b"Hello, world! (from 0.5)"
            response = client.get("/custom")

        assert response.status_code == 200
        assert response.headers["X-Powered-By"] == "custom web server"
        assert service.fake_cache.data[PAGE_CACHE_KEY] == "Hello, world! (from 0.5)"

        with patch.object(service.nginx_origin, "fetch", new_callable=AsyncMock) as fetch:
            root = client.get("/")

        assert root.text == "Hello, world! (from 0.5)"
        assert root.headers["X-Powered-By"] == "redis"
        fetch.assert_not_called()

    def test_run_returns_task_ids(self, client, service):
        with patch.object(service.task_invoker, "run", new_callable=AsyncMock) as run:
            run.return_value = TaskRunResult(task_ids=("arn:task/1",))
            response = client.get("/run")

        assert response.status_code == 200
        assert response.json() == {"success": True, "tasks": ["arn:task/1"]}
        run.assert_awaited_once_with(service.run_scope)

    def test_run_failure_has_no_tasks_field(self, client, service):
        with patch.object(service.task_invoker, "run", new_callable=AsyncMock) as run:
            run.side_effect = UpstreamUnavailable("task_pool", "AccessDenied")
            response = client.get("/run")

        assert response.status_code == 500
        body = json.loads(response.text)
        assert "tasks" not in body
        assert body["message"] == "task_pool: AccessDenied"

    @pytest.mark.parametrize("method,path", [
        ("GET", "/missing"),
        ("POST", "/"),
        ("DELETE", "/run"),
        ("GET", "/test/extra"),
        ("TRACE", "/"),
    ])
    def test_undeclared_routes_return_404(self, client, method, path):
        response = client.request(method, path)

        assert response.status_code == 404
        assert response.content == b""

    def test_health_endpoint(self, client, service):
        with patch.object(service, "_check_dependencies", new_callable=AsyncMock) as check:
            check.return_value = {"redis": "ok"}
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "router"
        assert data["dependencies"] == {"redis": "ok"}

    def test_metrics_endpoint(self, client, service):
        service.fake_cache.data[PAGE_CACHE_KEY] = "cached"
        client.get("/")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert 'cache_hits_total{cache_type="page"} 1.0' in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get("/test", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_router_exception_outside_router_uses_error_response(self, client, service):
        failure = RouteTableError("Unknown route type", {"route": "broken"})

        with patch.object(service.metrics, "export", side_effect=failure):
            response = client.get("/metrics")

        assert response.status_code == 500
        assert response.json() == {
            "trace_id": None,
            "code": "ROUTE_TABLE_ERROR",
            "message": "Unknown route type",
            "details": {"route": "broken"},
        }

    def test_http_metrics_are_labelled_by_route(self, client, service):
        for i in range(50):
            client.get(f"/random-{i}")
        client.get("/test")
        client.get("/test")

        exported = service.metrics.export().decode()
        series = [line for line in exported.splitlines() if line.startswith("http_requests_total{")]

        assert len(series) == 2
        assert 'http_requests_total{method="GET",endpoint="unmatched",status_code="404"} 50.0' in exported
        assert 'http_requests_total{method="GET",endpoint="/test",status_code="200"} 2.0' in exported

    def test_shell_routes_keep_their_own_label(self, client, service):
        client.get("/metrics")

        exported = service.metrics.export().decode()

        assert 'http_requests_total{method="GET",endpoint="/metrics",status_code="200"} 1.0' in exported

    def test_forward_keeps_repeated_request_headers(self, client, service):
        seen = {}

        def upstream(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["forwarded_for"] = request.headers.get_list("x-forwarded-for")
            return httpx.Response(200, stream=httpx.ByteStream(b"ok"))

        service.router._forwarders["/nginx"]._transport = httpx.MockTransport(upstream)

        response = client.get(
            "/nginx/a",
            headers=[("X-Forwarded-For", "1.1.1.1"), ("X-Forwarded-For", "2.2.2.2")],
        )

        assert response.status_code == 200
        assert response.content == b"ok"
        assert seen["path"] == "/a"
        assert seen["forwarded_for"] == ["1.1.1.1", "2.2.2.2"]

        exported = service.metrics.export().decode()
        assert 'endpoint="/nginx"' in exported
