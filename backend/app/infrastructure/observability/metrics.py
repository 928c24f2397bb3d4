from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

REQUESTS_TOTAL = Counter(
    "total_requests",
    "Total HTTP requests",
    labelnames=("method", "path", "status"),
)
REQUEST_LATENCY_SECONDS = Histogram(
    "request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path"),
)
DB_QUERY_DURATION_SECONDS = Histogram(
    "db_query_duration_seconds",
    "Database query duration in seconds",
    labelnames=("operation",),
)
REDIS_LATENCY_SECONDS = Histogram(
    "redis_latency_seconds",
    "Redis command latency in seconds",
    labelnames=("operation",),
)
CASTING_TRANSITIONS_TOTAL = Counter(
    "casting_transitions_total",
    "Casting status transitions applied by conditional updates",
    labelnames=("from_status", "to_status"),
)
AUTOMATION_ACTIONS_TOTAL = Counter(
    "automation_actions_total",
    "Automation action executions by outcome",
    labelnames=("trigger_name", "status"),
)
STORAGE_FOLDER_FAILURES_TOTAL = Counter(
    "storage_folder_failures_total",
    "Creator folder provisioning failures",
)
EMAIL_JOBS_QUEUED_TOTAL = Counter(
    "email_jobs_queued_total",
    "Notification e-mail jobs handed to the worker queue",
    labelnames=("template",),
)
EMAILS_SENT_TOTAL = Counter(
    "emails_sent_total",
    "Notification e-mails delivered by workers",
)
EMAIL_FAILURES_TOTAL = Counter(
    "email_failures_total",
    "Notification e-mails that failed in workers",
)

BACKGROUND_COUNTER_KEYS = {
    "emails_sent_total": "metrics:emails_sent_total",
    "email_failures_total": "metrics:email_failures_total",
}
_last_background_counter_values: dict[str, float] = {
    metric_name: 0.0 for metric_name in BACKGROUND_COUNTER_KEYS
}


def record_request(method: str, path: str, status_code: int, duration_seconds: float) -> None:
    REQUESTS_TOTAL.labels(method=method, path=path, status=str(status_code)).inc()
    REQUEST_LATENCY_SECONDS.labels(method=method, path=path).observe(duration_seconds)


def observe_db_query(duration_seconds: float, operation: str = "sql") -> None:
    DB_QUERY_DURATION_SECONDS.labels(operation=operation).observe(duration_seconds)


def observe_redis_latency(duration_seconds: float, operation: str) -> None:
    REDIS_LATENCY_SECONDS.labels(operation=operation).observe(duration_seconds)


def record_casting_transition(from_status: str, to_status: str) -> None:
    CASTING_TRANSITIONS_TOTAL.labels(from_status=from_status, to_status=to_status).inc()


def record_automation_action(trigger_name: str, status: str) -> None:
    AUTOMATION_ACTIONS_TOTAL.labels(trigger_name=trigger_name, status=status).inc()


def increment_background_counter(metric_name: str, amount: int = 1) -> None:
    redis_key = BACKGROUND_COUNTER_KEYS.get(metric_name)
    if redis_key is None:
        return
    try:
        from app.infrastructure.cache.redis_client import get_redis_client

        redis_client = get_redis_client()
        with measure_redis("metrics_background_counter_incr"):
            redis_client.incrby(redis_key, amount)
    except Exception:
        # Worker counters are best effort; delivery must not depend on Redis metrics.
        return


def _sync_background_counters_from_redis() -> None:
    try:
        from app.infrastructure.cache.redis_client import get_redis_client

        redis_client = get_redis_client()
        with measure_redis("metrics_background_counter_sync"):
            raw_values = redis_client.mget(list(BACKGROUND_COUNTER_KEYS.values()))
    except Exception:
        return

    current_by_metric: dict[str, float] = {}
    for idx, metric_name in enumerate(BACKGROUND_COUNTER_KEYS):
        raw_value = raw_values[idx] if raw_values else None
        current_by_metric[metric_name] = float(raw_value or 0.0)

    mapping = {
        "emails_sent_total": EMAILS_SENT_TOTAL,
        "email_failures_total": EMAIL_FAILURES_TOTAL,
    }
    for metric_name, collector in mapping.items():
        last_value = _last_background_counter_values.get(metric_name, 0.0)
        current_value = current_by_metric.get(metric_name, 0.0)
        delta = current_value - last_value
        if delta > 0:
            collector.inc(delta)
        _last_background_counter_values[metric_name] = current_value


@contextmanager
def measure_redis(operation: str):
    started_at = perf_counter()
    try:
        yield
    finally:
        observe_redis_latency(perf_counter() - started_at, operation=operation)


def metrics_response() -> Response:
    _sync_background_counters_from_redis()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
