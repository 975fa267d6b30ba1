"""
Trace correlation for logs.

A trace id travels with each request in the ``X-Trace-Id`` header. The
middleware binds it to a ContextVar for the lifetime of the request, HTTP
clients forward it downstream, and a logging filter stamps it on every record.
Background tasks started with ``asyncio.create_task`` copy the current context,
so side-effect logs carry the id of the request that triggered them.
"""

import logging
from contextvars import ContextVar
from uuid import uuid4

from fastapi import Request

TRACE_HEADER = "X-Trace-Id"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(service)s trace=%(trace_id)s] %(name)s: %(message)s"

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="-")


class TraceContextFilter(logging.Filter):
    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = trace_id_var.get()
        record.service = self.service
        return True


def configure_logging(service: str, level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, TraceContextFilter) for f in handler.filters):
            handler.addFilter(TraceContextFilter(service))


def trace_headers() -> dict[str, str]:
    """Headers to forward on an outgoing call, empty outside a request."""
    trace_id = trace_id_var.get()
    if trace_id == "-":
        return {}
    return {TRACE_HEADER: trace_id}


async def trace_middleware(request: Request, call_next):
    trace_id = request.headers.get(TRACE_HEADER) or uuid4().hex
    token = trace_id_var.set(trace_id)
    try:
        response = await call_next(request)
    finally:
        trace_id_var.reset(token)
    response.headers[TRACE_HEADER] = trace_id
    return response
