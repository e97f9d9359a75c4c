"""
Listener endpoint resolution.

A listener's network identity is not assumed stable, so a ``Listener``
holds an accessor rather than an endpoint. Callers must invoke
``Listener.endpoint()`` on every use and never keep the result beyond
the current request.
"""

import os
from typing import Callable, Mapping, Optional

from shared.errors import EndpointResolutionError
from shared.logging import get_logger

from .models import Endpoint

logger = get_logger("router.endpoints")


class Listener:
    """Named backing listener with a lazily resolved endpoint."""

    def __init__(self, name: str, resolve: Callable[[], Endpoint]):
        self.name = name
        self._resolve = resolve

    def endpoint(self) -> Endpoint:
        """Resolve the listener's current endpoint."""
        try:
            endpoint = self._resolve()
        except EndpointResolutionError:
            raise
        except Exception as exc:
            raise EndpointResolutionError(self.name, str(exc)) from exc

        logger.debug("Resolved endpoint", listener=self.name, hostname=endpoint.hostname, port=endpoint.port)
        return endpoint

    def __repr__(self) -> str:
        return f"Listener({self.name!r})"


def static_listener(name: str, hostname: str, port: int) -> Listener:
    """Listener whose endpoint never changes."""
    endpoint = Endpoint(hostname=hostname, port=port)
    return Listener(name, lambda: endpoint)


def _env_name(listener: str, suffix: str) -> str:
    normalized = "".join(c if c.isalnum() else "_" for c in listener).upper()
    return f"EDGE_LISTENER_{normalized}_{suffix}"


def env_listener(name: str, default: Endpoint, environ: Optional[Mapping[str, str]] = None) -> Listener:
    """Listener re-read from the process environment on every call.

    ``EDGE_LISTENER_<NAME>_HOST`` and ``EDGE_LISTENER_<NAME>_PORT`` override
    ``default``; e.g. the ``simple-nginx`` listener reads
    ``EDGE_LISTENER_SIMPLE_NGINX_HOST``.
    """
    host_var = _env_name(name, "HOST")
    port_var = _env_name(name, "PORT")

    def _resolve() -> Endpoint:
        env = os.environ if environ is None else environ
        hostname = env.get(host_var) or default.hostname
        raw_port = env.get(port_var)
        if not raw_port:
            return Endpoint(hostname=hostname, port=default.port)
        try:
            port = int(raw_port)
        except ValueError:
            raise EndpointResolutionError(
                name,
                f"Invalid port {raw_port!r}",
                details={"variable": port_var},
            )
        if not 0 < port < 65536:
            raise EndpointResolutionError(name, f"Port out of range: {port}", details={"variable": port_var})
        return Endpoint(hostname=hostname, port=port)

    return Listener(name, _resolve)
