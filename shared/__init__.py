"""
Shared utilities for the edge router.

Common building blocks consumed by the router service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request/trace correlation
- metrics: Prometheus metrics helpers
- tracing: OpenTelemetry tracing config
- errors: Error taxonomy and failure serialization
- base_service: FastAPI service shell (health, metrics, request timing)

Do not import from service_router into shared/.
"""
