from dataclasses import dataclass

from fastapi import Request


@dataclass(frozen=True)
class RequestContext:
    """Caller identity and trace id attached to a request for logging."""

    trace_id: str
    user_id: str | None = None
    role: str | None = None
    branch_id: str | None = None


def context_from_state(request: Request) -> RequestContext:
    state = request.state
    return RequestContext(
        trace_id=getattr(state, "trace_id", ""),
        user_id=getattr(state, "user_id", None),
        role=getattr(state, "role", None),
        branch_id=getattr(state, "branch_id", None),
    )


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if isinstance(context, RequestContext):
        return context
    return context_from_state(request)
