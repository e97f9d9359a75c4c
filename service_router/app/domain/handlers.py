"""
Route handlers for the edge router.

Handlers raise on failure; turning failures into responses is the
router's job.
"""

import json
from typing import Optional, Sequence

from shared.errors import HandlerInternalError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.origin_client import OriginClient
from ..adapters.task_invoker import TaskInvoker
from ..caching.cache_store import CacheStore
from .endpoints import Listener
from .models import PAGE_CACHE_KEY, CacheEntry, HandlerContext, Request, ResponseEnvelope

POWERED_BY_HEADER = "X-Powered-By"
CACHE_POWERED_BY = "redis"

logger = get_logger("router.handlers")


def _json_response(payload, status_code: int = 200) -> ResponseEnvelope:
    return ResponseEnvelope(
        status_code=status_code,
        headers={"Content-Type": "application/json"},
        body=json.dumps(payload),
    )


async def _backfill(cache: CacheStore, origin: OriginClient) -> CacheEntry:
    """Fetch the origin page and store it under the shared page key."""
    body = (await origin.fetch()).decode("utf-8", errors="replace")
    entry = CacheEntry(key=PAGE_CACHE_KEY, value=body)
    await cache.set(entry.key, entry.value)
    return entry


class CacheAsideHandler:
    """Serve the page from cache, backfilling from the origin on a miss."""

    def __init__(self, cache: CacheStore, origin: OriginClient, metrics: Optional[MetricsCollector] = None):
        self.cache = cache
        self.origin = origin
        self.metrics = metrics

    async def __call__(self, request: Request, context: HandlerContext) -> ResponseEnvelope:
        logger.info("Handling cache-aside request", path=request.path)
        page = await self.cache.get(PAGE_CACHE_KEY)
        # An empty cached page counts as a miss.
        if page:
            self._count("cache_hits_total")
            return ResponseEnvelope(
                status_code=200,
                headers={POWERED_BY_HEADER: CACHE_POWERED_BY},
                body=page,
            )

        self._count("cache_misses_total")
        entry = await _backfill(self.cache, self.origin)

        return ResponseEnvelope(
            status_code=200,
            headers={POWERED_BY_HEADER: self.origin.name},
            body=entry.value,
        )

    def _count(self, metric: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric, cache_type="page")


class OriginBackfillHandler:
    """Always fetch from the origin and overwrite the shared page entry."""

    def __init__(self, cache: CacheStore, origin: OriginClient):
        self.cache = cache
        self.origin = origin

    async def __call__(self, request: Request, context: HandlerContext) -> ResponseEnvelope:
        entry = await _backfill(self.cache, self.origin)

        return ResponseEnvelope(
            status_code=200,
            headers={POWERED_BY_HEADER: self.origin.name},
            body=entry.value,
        )


class TaskTriggerHandler:
    """Launch one task run and report the launched task ids."""

    requires_scope = True

    def __init__(self, invoker: TaskInvoker, metrics: Optional[MetricsCollector] = None):
        self.invoker = invoker
        self.metrics = metrics

    async def __call__(self, request: Request, context: HandlerContext) -> ResponseEnvelope:
        if context.scope is None:
            raise HandlerInternalError(
                "Task launch attempted without an execution scope",
                details={"route": context.route_path},
            )

        try:
            result = await self.invoker.run(context.scope)
        except Exception:
            self._count("failure")
            raise

        self._count("success")
        return _json_response({"success": True, "tasks": list(result.task_ids)})

    def _count(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("task_runs_total", result=result)


class IntrospectionHandler:
    """Report the current endpoints of the given listeners."""

    def __init__(self, listeners: Sequence[Listener]):
        self.listeners = tuple(listeners)

    async def __call__(self, request: Request, context: HandlerContext) -> ResponseEnvelope:
        return _json_response({
            listener.name: listener.endpoint().to_dict()
            for listener in self.listeners
        })
