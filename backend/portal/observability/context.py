"""Per-request logging context.

``RequestIDMiddleware`` opens a ``RequestContext`` for every request; the
workspace dependency fills in the org and user once access is verified.
The context object is shared by reference, so values bound inside a
threadpool dependency are visible to the endpoint and to later log records
of the same request.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional


@dataclass
class RequestContext:
    request_id: str
    org_id: Optional[str] = None
    user_id: Optional[str] = None


request_context_var: ContextVar[Optional[RequestContext]] = ContextVar("request_context", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def start_request(request_id: Optional[str] = None) -> RequestContext:
    ctx = RequestContext(request_id=request_id or generate_request_id())
    request_context_var.set(ctx)
    return ctx


def get_request_context() -> Optional[RequestContext]:
    return request_context_var.get()


def get_request_id() -> str:
    """Current request id, or "-" outside a request."""
    ctx = request_context_var.get()
    return ctx.request_id if ctx else "-"


def bind_workspace(org_id, user_id: str) -> None:
    """Attach the verified workspace to the current request. No-op outside a request."""
    ctx = request_context_var.get()
    if ctx is not None:
        ctx.org_id = str(org_id)
        ctx.user_id = user_id
