from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.cuadre.core.context import get_request_context
from app.cuadre.core.db_timing import measure_db_time
from app.cuadre.core.logging import log_json
from app.cuadre.core.metrics import metrics

logger = logging.getLogger("cuadre.request")


def _route_path(request: Request) -> str:
    scope_route = request.scope.get("route")
    if scope_route is not None:
        path = getattr(scope_route, "path", None)
        if path:
            return path
    return request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
) -> dict:
    context = get_request_context(request)
    return {
        "event": "http_request",
        "trace_id": context.trace_id,
        "user_id": context.user_id,
        "role": context.role,
        "branch_id": context.branch_id,
        "route": _route_path(request),
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(db_time_ms, 2) if db_time_ms is not None else None,
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response: Response | None = None
        with measure_db_time() as db_timer:
            try:
                response = await call_next(request)
                return response
            finally:
                latency_ms = (time.perf_counter() - start_time) * 1000
                payload = build_request_log_payload(
                    request=request,
                    response=response,
                    latency_ms=latency_ms,
                    db_time_ms=db_timer.elapsed_ms,
                )
                log_json(logger, payload)
                metrics.record_http_request(
                    route=payload["route"],
                    method=payload["method"],
                    status_code=payload["status_code"],
                    latency_ms=latency_ms,
                )
