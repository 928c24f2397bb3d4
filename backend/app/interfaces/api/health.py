from time import perf_counter

from fastapi import APIRouter, Response, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.infrastructure.cache.redis_client import get_redis_client
from app.infrastructure.db.session import SessionLocal
from app.infrastructure.observability.metrics import measure_redis, metrics_response

router = APIRouter()


def _elapsed_ms(started_at: float) -> float:
    return round((perf_counter() - started_at) * 1000, 2)


def _integration_status() -> dict[str, bool]:
    return {
        "slack_configured": bool(settings.slack_bot_token),
        "email_configured": bool(settings.resend_api_key),
        "storage_configured": bool(settings.google_service_account_json_path),
    }


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check() -> dict:
    services: dict = {
        "api": "up",
        "database": "up",
        "redis": "up",
        "worker_alive": False,
        "db_latency_ms": None,
        "redis_latency_ms": None,
    }

    try:
        started_at = perf_counter()
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        services["db_latency_ms"] = _elapsed_ms(started_at)
    except SQLAlchemyError:
        services["database"] = "down"

    try:
        redis_client = get_redis_client()
        started_at = perf_counter()
        with measure_redis("health_ping"):
            redis_client.ping()
        services["redis_latency_ms"] = _elapsed_ms(started_at)
        with measure_redis("health_worker_heartbeat_check"):
            services["worker_alive"] = bool(redis_client.exists(settings.worker_heartbeat_key))
    except RedisError:
        services["redis"] = "down"

    healthy = services["database"] == "up" and services["redis"] == "up" and services["worker_alive"]
    return {
        "status": "ok" if healthy else "degraded",
        "services": services,
        "integrations": _integration_status(),
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check(response: Response) -> dict:
    # Email and automation dispatch need the worker, so readiness includes it.
    payload = health_check()
    if payload["status"] != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "services": payload["services"]}
    return {"status": "ready", "services": payload["services"]}


@router.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_response()
