"""
Origin client for the edge router.
"""

import httpx

from shared.errors import UpstreamUnavailable
from shared.logging import get_logger

from ..domain.endpoints import Listener


class OriginClient:
    """Fetches the root document of a backing listener."""

    def __init__(self, name: str, listener: Listener, transport: httpx.AsyncBaseTransport = None):
        self.name = name
        self.listener = listener
        self._transport = transport
        self.logger = get_logger("router.origin_client")

    async def fetch(self) -> bytes:
        """GET the listener's root path and return the full body.

        The endpoint is resolved on every call.
        """
        endpoint = self.listener.endpoint()
        url = f"http://{endpoint.hostname}:{endpoint.port}/"
        self.logger.info("Fetching from origin", origin=self.name, url=url)

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            self.logger.error("Origin request failed", origin=self.name, url=url, error=str(exc))
            raise UpstreamUnavailable(
                service=self.name,
                message=str(exc) or type(exc).__name__,
                details={"url": url},
            ) from exc

        if not response.is_success:
            self.logger.error(
                "Origin returned error status",
                origin=self.name,
                url=url,
                status_code=response.status_code,
            )
            raise UpstreamUnavailable(
                service=self.name,
                message=f"Unexpected status {response.status_code}",
                details={"url": url, "status_code": response.status_code, "body": response.text},
            )

        self.logger.debug("Origin response received", origin=self.name, size=len(response.content))
        return response.content
