"""
Adapters package for the Edge Router.

Thin clients for the router's external collaborators: origin web
servers, forward targets and the ECS task pool. Each resolves its
listener endpoint per call and maps transport failures to
``shared.errors.UpstreamUnavailable``. No retries are applied.
"""

from .origin_client import OriginClient
from .forwarder import Forwarder
from .task_invoker import TaskInvoker

__all__ = [
    "OriginClient",
    "Forwarder",
    "TaskInvoker",
]
