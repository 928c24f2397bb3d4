import json
import logging

from redis.exceptions import RedisError

from app.core.config import settings
from app.infrastructure.cache.redis_client import get_redis_client
from app.infrastructure.observability.metrics import measure_redis

logger = logging.getLogger(__name__)


def casting_view_paths(casting_id) -> tuple[str, ...]:
    return ("/dashboard/castings", f"/dashboard/castings/{casting_id}")


def invalidate_views(*paths: str) -> None:
    if not settings.view_invalidation_enabled or not paths:
        return
    unique_paths = list(dict.fromkeys(paths))
    try:
        redis_client = get_redis_client()
        with measure_redis("view_invalidation_publish"):
            redis_client.publish(settings.view_invalidation_channel, json.dumps({"paths": unique_paths}))
    except RedisError as exc:
        logger.warning("view_invalidation_failed paths=%s reason=%s", ",".join(unique_paths), exc)
