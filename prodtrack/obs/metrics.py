# prodtrack/obs/metrics.py
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

# kind: work_item | bundle ; outcome: ok | conflict | not_found | error
work_assignments_total = Counter(
    "work_assignments_total", "Work assignment attempts", ["kind", "outcome"]
)
work_completions_total = Counter("work_completions_total", "Completed work units", ["kind"])
available_fallback_total = Counter(
    "available_bundles_fallback_total", "Available-bundle listings served from the bundle table"
)
store_errors_total = Counter("store_errors_total", "Persistence failures by category", ["type"])

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response
