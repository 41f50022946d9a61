# ─────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics Endpoint — text exposition format
# ─────────────────────────────────────────────────────────────────────────────
# GET /metrics/prometheus → text/plain Prometheus format
# Bridges StudioMetrics → prometheus-client gauges.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Gauge, generate_latest

from productshot.dependencies import get_metrics, get_rate_limiter
from productshot.pipeline.tasks import FailureCode
from productshot.rate_limit import FixedWindowRateLimiter
from productshot.services.metrics import StudioMetrics

router = APIRouter()

# ── Prometheus metrics (custom registry to avoid default process metrics) ─────
# Gauges mirror StudioMetrics counters at scrape time.

_registry = CollectorRegistry()

_admissions = Gauge(
    "productshot_admissions",
    "Requests seen by the fixed-window limiter",
    ["outcome"],
    registry=_registry,
)

_tasks = Gauge(
    "productshot_generation_tasks",
    "Upstream generation tasks by outcome",
    ["outcome"],
    registry=_registry,
)

_task_failures = Gauge(
    "productshot_generation_task_failures",
    "Failed generation tasks by failure code",
    ["code"],
    registry=_registry,
)

_latency_p95 = Gauge(
    "productshot_upstream_latency_p95_ms",
    "p95 upstream task latency over the last 1000 tasks",
    registry=_registry,
)

_tracked_clients = Gauge(
    "productshot_rate_limit_tracked_clients",
    "Identifiers currently held by the rate limiter",
    registry=_registry,
)


def _sync_metrics(metrics: StudioMetrics, limiter: FixedWindowRateLimiter) -> None:
    """Sync StudioMetrics data into Prometheus gauges."""
    data = metrics.to_dict()

    _admissions.labels(outcome="admitted").set(data["requests_admitted"])
    _admissions.labels(outcome="rejected").set(data["requests_rejected"])
    _tasks.labels(outcome="succeeded").set(data["tasks_succeeded"])
    _tasks.labels(outcome="failed").set(data["tasks_failed"])

    failures = data["failures_by_code"]
    for code in FailureCode:
        _task_failures.labels(code=code.value).set(failures.get(code.value, 0))

    _latency_p95.set(data["latency_p95_ms"])
    _tracked_clients.set(limiter.tracked_identifiers)


@router.get("/metrics/prometheus")
async def prometheus_metrics(
    metrics: StudioMetrics = Depends(get_metrics),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> Response:
    """Prometheus text exposition format metrics endpoint."""
    _sync_metrics(metrics, limiter)
    return Response(
        content=generate_latest(_registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
