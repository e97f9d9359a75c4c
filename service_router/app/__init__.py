"""
Edge Router service package.

A single HTTP entry point that dispatches requests over a static route
table:

- ``/``: cache-aside read of the nginx page through Redis
- ``/custom``: origin fetch that overwrites the same cached page
- ``/run``: launch one ECS task under its own execution scope
- ``/test``: report current listener endpoints
- ``/nginx``: transparent passthrough to the nginx listener

Structure:
- app.main: FastAPI app and service wiring.
- app.domain: models, endpoint resolution, route table, router, handlers.
- app.adapters: origin, forwarding and task-pool clients.
- app.caching: Redis page cache.
"""
