"""
Request logging middleware with trace correlation
"""
import time
from fastapi import Request
from opentelemetry import trace
import structlog

logger = structlog.get_logger(__name__)


def current_trace_id() -> str:
    span = trace.get_current_span()
    if span and span.get_span_context().is_valid:
        return format(span.get_span_context().trace_id, '032x')
    return ""


def bind_user(request: Request, user_id: str):
    """Record the authenticated caller so the completion log can name it"""
    request.state.user_id = user_id


async def logging_middleware(request: Request, call_next):
    """Log each HTTP request and its outcome, with the caller once authenticated"""
    start_time = time.time()
    trace_id = current_trace_id()

    logger.info(
        "Request started",
        trace_id=trace_id,
        method=request.method,
        path=request.url.path,
        query=str(request.query_params) if request.query_params else "",
        client_ip=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", "")
    )

    response = await call_next(request)

    # Route template, e.g. /api/campaigns/{campaign_id}
    route = request.scope.get("route")
    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "Request completed",
        trace_id=trace_id,
        method=request.method,
        path=request.url.path,
        route=getattr(route, "path", ""),
        user_id=getattr(request.state, "user_id", None),
        status_code=response.status_code,
        latency_seconds=round(time.time() - start_time, 3)
    )

    return response
