"""
Transparent passthrough to a backing listener.
"""

import httpx

from shared.logging import get_logger

from ..domain.endpoints import Listener
from ..domain.models import Request, ResponseEnvelope

# Connection-scoped headers that must not be relayed hop to hop.
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


class Forwarder:
    """Relays requests to a listener and its responses back, unmodified.

    The route prefix is stripped before the request goes upstream, so
    ``/nginx/status`` reaches the target as ``/status`` and ``/nginx`` as
    ``/``.
    """

    def __init__(self, target: Listener, prefix: str = "", transport: httpx.AsyncBaseTransport = None):
        self.target = target
        self.prefix = prefix
        self._transport = transport
        self.logger = get_logger("router.forwarder")

    def _upstream_path(self, path: str) -> str:
        if self.prefix and (path == self.prefix or path.startswith(self.prefix + "/")):
            path = path[len(self.prefix):]
        return path or "/"

    async def forward(self, request: Request) -> ResponseEnvelope:
        """Send ``request`` to the target listener.

        Raises ``httpx.HTTPError`` when the target cannot be reached; any
        response the target does return is relayed as is, whatever its
        status.
        """
        endpoint = self.target.endpoint()
        url = f"http://{endpoint.hostname}:{endpoint.port}{self._upstream_path(request.path)}"
        if request.query:
            url = f"{url}?{request.query}"

        headers = [
            (name, value)
            for name, value in request.headers
            if name.lower() != "host" and name.lower() not in HOP_BY_HOP_HEADERS
        ]

        self.logger.info("Forwarding request", target=self.target.name, method=request.method, url=url)
        async with httpx.AsyncClient(transport=self._transport) as client:
            upstream = client.build_request(
                request.method,
                url,
                headers=headers,
                content=request.body,
            )
            # Drop the client's default headers; only the caller's go upstream.
            passthrough = {name.lower() for name, _ in headers}
            for name in list(upstream.headers.keys()):
                if name.lower() not in passthrough and name.lower() not in ("host", "content-length"):
                    del upstream.headers[name]
            response = await client.send(upstream, stream=True)
            try:
                if response.is_stream_consumed:
                    body = response.content
                else:
                    # Raw bytes keep any content-encoding the target applied.
                    body = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()

        # Pairs, not a dict: repeated headers such as Set-Cookie stay separate.
        return ResponseEnvelope(
            status_code=response.status_code,
            headers=[
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "content-length"
            ],
            body=body,
        )
