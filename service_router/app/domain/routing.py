"""
Route table for the edge router.

Routes are a closed set of variants: ``HandlerRoute`` invokes application
logic, ``ForwardRoute`` passes the request through to a backing listener
untouched. The table is validated once at startup and is immutable
afterwards; resolution is first-match in declared order.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Set, Tuple, Union

from shared.errors import RouteTableError

from .endpoints import Listener
from .models import ExecutionScope, HandlerContext, Request, ResponseEnvelope

Handler = Callable[[Request, HandlerContext], Awaitable[ResponseEnvelope]]


@dataclass(frozen=True)
class HandlerRoute:
    path: str
    method: str
    handler: Handler
    scope: Optional[ExecutionScope] = None

    def matches(self, path: str, method: str) -> bool:
        return path == self.path and method.upper() == self.method


@dataclass(frozen=True)
class ForwardRoute:
    """Structural forward: any method, the prefix itself or anything below it."""
    prefix: str
    target: Listener

    def matches(self, path: str, method: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")


Route = Union[HandlerRoute, ForwardRoute]


class RouteTable:
    """Immutable, ordered route table."""

    def __init__(self, routes: Iterable[Route]):
        self._routes: Tuple[Route, ...] = tuple(routes)
        self._validate()

    def _validate(self) -> None:
        seen: Set[Tuple[str, str]] = set()
        for route in self._routes:
            if isinstance(route, HandlerRoute):
                if not route.path.startswith("/"):
                    raise RouteTableError("Route path must start with '/'", {"path": route.path})
                if route.method != route.method.upper():
                    raise RouteTableError("Route method must be upper case", {"path": route.path, "method": route.method})
                key = (route.path, route.method)
                if key in seen:
                    raise RouteTableError("Duplicate route", {"path": route.path, "method": route.method})
                seen.add(key)
                if getattr(route.handler, "requires_scope", False) is True and route.scope is None:
                    raise RouteTableError(
                        "Handler requires an execution scope",
                        {"path": route.path, "method": route.method},
                    )
            elif isinstance(route, ForwardRoute):
                if not route.prefix.startswith("/") or route.prefix == "/" or route.prefix.endswith("/"):
                    raise RouteTableError("Invalid forward prefix", {"prefix": route.prefix})
            else:
                raise RouteTableError("Unknown route type", {"route": repr(route)})

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self._routes

    def resolve(self, path: str, method: str) -> Optional[Route]:
        """Return the first route matching ``(path, method)``."""
        for route in self._routes:
            if route.matches(path, method):
                return route
        return None

    def __len__(self) -> int:
        return len(self._routes)
