"""
Request/response data models for the edge router.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union


# Single well-known key shared by the "/" and "/custom" routes.
PAGE_CACHE_KEY = "page"


@dataclass(frozen=True)
class Endpoint:
    """Network-reachable service instance."""
    hostname: str
    port: int

    def to_dict(self) -> Dict[str, object]:
        return {"hostname": self.hostname, "port": self.port}


@dataclass(frozen=True)
class Request:
    """Inbound request, immutable once received.

    Headers are kept as ordered name/value pairs so a repeated header
    (``Cookie``, ``X-Forwarded-For``) survives a forward intact.
    """
    path: str
    method: str
    headers: Union[Mapping[str, str], Iterable[Tuple[str, str]]] = ()
    body: Optional[bytes] = None
    query: str = ""

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        pairs = self.headers.items() if isinstance(self.headers, Mapping) else self.headers
        object.__setattr__(self, "headers", tuple((str(name), str(value)) for name, value in pairs))


@dataclass
class ResponseEnvelope:
    """Response produced exactly once per request."""
    status_code: int
    # A dict, or name/value pairs when a header may repeat.
    headers: Union[Dict[str, str], List[Tuple[str, str]]] = field(default_factory=dict)
    body: Union[str, bytes] = ""

    def header_items(self) -> List[Tuple[str, str]]:
        if isinstance(self.headers, dict):
            return list(self.headers.items())
        return list(self.headers)

    def body_bytes(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: str


@dataclass(frozen=True)
class TaskRunResult:
    """Identifiers of the tasks launched by one invocation."""
    task_ids: Tuple[str, ...]


@dataclass(frozen=True)
class ExecutionScope:
    """Credential scope granted to a single route.

    Only routes that carry a scope may launch compute tasks.
    """
    name: str
    role_arn: Optional[str] = None
    policy_arns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HandlerContext:
    route_path: str
    scope: Optional[ExecutionScope] = None
