"""
Middleware components for the gitbridge API

Request logging, Prometheus metrics and global error handling. Query strings
carry repository paths and are never logged; remote URLs and credentials only
travel in request bodies.
"""

import logging
import time
import uuid
from typing import Callable

from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Match


http_requests = Counter(
    'gitbridge_http_requests_total',
    'HTTP requests by route template',
    ['method', 'route', 'status_code']
)

http_latency = Histogram(
    'gitbridge_http_request_duration_seconds',
    'HTTP request latency; remote operations dominate the upper buckets',
    ['method', 'route'],
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 15, 60, 300)
)

requests_in_flight = Gauge(
    'gitbridge_http_requests_in_flight',
    'HTTP requests currently being served'
)

remote_operations = Counter(
    'gitbridge_remote_operations_total',
    'Clone, pull and branch listing outcomes',
    ['operation', 'outcome']
)

logger = logging.getLogger(__name__)


def record_remote_operation(operation: str, succeeded: bool) -> None:
    remote_operations.labels(operation=operation, outcome="success" if succeeded else "failure").inc()


def route_template(request: Request) -> str:
    """Path template of the matching route, e.g. /api/v1/remotes/clone"""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return getattr(route, "path", "unmatched")
    return "unmatched"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a generated request id"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        logger.info(f"[{request_id}] {request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} raised after "
                f"{time.perf_counter() - started:.3f}s",
                exc_info=True
            )
            raise

        logger.info(
            f"[{request_id}] {response.status_code} in {time.perf_counter() - started:.3f}s"
        )
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Prometheus request metrics labelled by route template"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        route = route_template(request)
        status_code = "500"
        started = time.perf_counter()
        requests_in_flight.inc()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            requests_in_flight.dec()
            http_requests.labels(method=request.method, route=route, status_code=status_code).inc()
            http_latency.labels(method=request.method, route=route).observe(time.perf_counter() - started)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a JSON 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error in {request.url.path}: {type(e).__name__}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "request_id": getattr(request.state, "request_id", None),
                }
            )
