import logging
from dataclasses import dataclass, field
from typing import Any

from kombu.exceptions import OperationalError

from app.core.config import settings
from app.infrastructure.observability.metrics import EMAIL_JOBS_QUEUED_TOTAL, increment_background_counter
from app.integrations.email_sender import EmailSenderError, send_templated_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailJob:
    recipient: str
    template: str
    params: dict[str, Any] = field(default_factory=dict)


def _enqueue(job: EmailJob, countdown: float) -> None:
    from workers.tasks import send_notification_email  # local import to avoid circular imports at module load

    send_notification_email.apply_async(
        kwargs={"recipient": job.recipient, "template": job.template, "params": job.params},
        countdown=countdown,
    )


def queue_emails(jobs: list[EmailJob]) -> int:
    """Hand jobs to the worker queue, paced by ``email_send_interval_seconds``.

    Returns the number of jobs accepted by the broker; failures are logged per recipient.
    """
    queued = 0
    for index, job in enumerate(jobs):
        countdown = round(index * settings.email_send_interval_seconds, 3)
        try:
            _enqueue(job, countdown)
        except OperationalError as exc:
            logger.error(
                "email_enqueue_failed recipient=%s template=%s reason=%s",
                job.recipient,
                job.template,
                exc,
            )
            continue
        queued += 1
        EMAIL_JOBS_QUEUED_TOTAL.labels(template=job.template).inc()
    if jobs:
        logger.info("email_batch_queued total=%s queued=%s", len(jobs), queued)
    return queued


def deliver_email_job(job: EmailJob) -> bool:
    try:
        result = send_templated_email(job.recipient, job.template, job.params)
    except EmailSenderError as exc:
        logger.error("email_send_failed recipient=%s template=%s reason=%s", job.recipient, job.template, exc)
        increment_background_counter("email_failures_total")
        return False

    if not result.success:
        logger.error(
            "email_send_failed recipient=%s template=%s reason=%s",
            job.recipient,
            job.template,
            result.error,
        )
        increment_background_counter("email_failures_total")
        return False

    logger.info("email_sent recipient=%s template=%s message_id=%s", job.recipient, job.template, result.message_id)
    increment_background_counter("emails_sent_total")
    return True
