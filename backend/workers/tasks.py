import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.application.services.automation_service import trigger_automation
from app.application.services.notification_queue import EmailJob, deliver_email_job
from app.core.config import settings
from app.infrastructure.cache.redis_client import get_redis_client
from app.infrastructure.db.session import SessionLocal
from app.infrastructure.observability.metrics import measure_redis
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="workers.tasks.send_notification_email", rate_limit=settings.email_task_rate_limit)
def send_notification_email(recipient: str, template: str, params: dict) -> dict:
    delivered = deliver_email_job(EmailJob(recipient=recipient, template=template, params=params or {}))
    return {"recipient": recipient, "template": template, "delivered": delivered}


@celery_app.task(name="workers.tasks.run_automation_trigger", acks_late=True)
def run_automation_trigger(trigger_name: str, parameters: dict, executed_by: str | None = None) -> dict:
    executed_by_uuid = UUID(executed_by) if executed_by else None
    with SessionLocal() as db:
        try:
            summary = trigger_automation(db, trigger_name, parameters, executed_by=executed_by_uuid)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            # Actions may already have run; never replay them.
            logger.exception("automation_trigger_task_store_error trigger=%s", trigger_name)
            return {"trigger_name": trigger_name, "status": "store_error"}
    logger.info(
        "automation_trigger_task_completed trigger=%s rules_matched=%s actions_failed=%s",
        trigger_name,
        summary.rules_matched,
        summary.actions_failed,
    )
    return summary.to_dict()


@celery_app.task(name="workers.tasks.worker_heartbeat")
def worker_heartbeat() -> dict:
    redis_client = get_redis_client()
    now = datetime.now(UTC).isoformat()
    with measure_redis("worker_heartbeat_set"):
        redis_client.set(
            settings.worker_heartbeat_key,
            now,
            ex=max(15, settings.worker_heartbeat_ttl_seconds),
        )
    return {"heartbeat_at": now}
