"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Gauge, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Skills suggester application info")
APP_INFO.info({"version": "1.0.0", "name": "skills_suggester"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60],
)

COMPLETION_ATTEMPTS = Counter(
    "skill_completion_attempts_total",
    "Upstream completion attempts by outcome",
    ["outcome"],  # success | rate_limited | upstream_error
)

JOB_RETRIES = Counter(
    "skill_job_retries_total",
    "Jobs re-queued after a rate-limit response",
)

JOB_DELIVERIES = Counter(
    "skill_job_deliveries_total",
    "Terminal deliveries by status",
    ["status"],
)

QUEUE_DEPTH = Gauge(
    "skill_queue_depth",
    "Jobs waiting in the admission queue",
)


# --- Middleware ---


def _route_path(request: Request) -> str:
    """Route template for the path label; unmatched URLs share one label."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        path = _route_path(request)

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
