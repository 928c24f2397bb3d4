import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.application.services import notification_queue
from app.application.services.casting_state import transition_casting_status
from app.application.services.notification_queue import EmailJob
from app.core.config import settings
from app.domain.models.casting import Casting, CastingSelection, CastingStatus, SelectionRole
from app.domain.models.client import Client
from app.domain.models.creator import Creator
from app.domain.models.creator_submission import CreatorSubmission
from app.infrastructure.cache.view_invalidation import casting_view_paths, invalidate_views
from app.infrastructure.observability.metrics import STORAGE_FOLDER_FAILURES_TOTAL
from app.integrations import storage_provisioning
from app.integrations.email_sender import EmailTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderProvisioningResult:
    created: int = 0
    failed: int = 0
    skipped_reason: str | None = None


def creator_briefings_url() -> str:
    return f"{settings.app_url.rstrip('/')}/dashboard/creator/briefings"


def client_selected_creators(db: Session, casting_id: UUID) -> list[Creator]:
    creator_ids = select(CastingSelection.creator_id).where(
        CastingSelection.casting_id == casting_id,
        CastingSelection.selected_by_role == SelectionRole.CLIENT.value,
    )
    return list(
        db.execute(select(Creator).where(Creator.id.in_(creator_ids)).order_by(Creator.first_name.asc()))
        .scalars()
        .all()
    )


def provision_creator_folders(db: Session, casting: Casting, creators: list[Creator]) -> FolderProvisioningResult:
    """Find-or-create one storage folder per creator and stamp it on their submission.

    Failures are logged per creator and never raised.
    """
    client = db.get(Client, casting.client_id)
    if client is None or not client.drive_folder_id:
        logger.info("storage_provisioning_skipped casting_id=%s reason=no_client_root", casting.id)
        return FolderProvisioningResult(skipped_reason="no_client_root")

    try:
        provisioner = storage_provisioning.get_storage_provisioner()
        raw_folder_id = provisioner.ensure_root_folder(client.drive_folder_id)
    except Exception as exc:
        STORAGE_FOLDER_FAILURES_TOTAL.inc()
        logger.exception("storage_root_folder_failed casting_id=%s client_id=%s reason=%s", casting.id, client.id, exc)
        return FolderProvisioningResult(failed=len(creators), skipped_reason="root_folder_failed")

    created = 0
    failed = 0
    for creator in creators:
        try:
            folder = provisioner.create_subfolder(raw_folder_id, creator.full_name, casting.title)
        except Exception as exc:
            failed += 1
            STORAGE_FOLDER_FAILURES_TOTAL.inc()
            logger.exception(
                "storage_creator_folder_failed casting_id=%s creator_id=%s reason=%s",
                casting.id,
                creator.id,
                exc,
            )
            continue

        submission = db.execute(
            select(CreatorSubmission).where(
                CreatorSubmission.casting_id == casting.id,
                CreatorSubmission.creator_id == creator.id,
            )
        ).scalar_one_or_none()
        if submission is not None:
            submission.drive_folder_id = folder.folder_id
            submission.drive_folder_url = folder.folder_url
            submission.drive_folder_created_at = datetime.now(UTC)
        created += 1

    db.commit()
    logger.info("storage_provisioning_completed casting_id=%s created=%s failed=%s", casting.id, created, failed)
    return FolderProvisioningResult(created=created, failed=failed)


def briefing_ready_jobs(casting: Casting, creators: list[Creator]) -> list[EmailJob]:
    return [
        EmailJob(
            recipient=creator.email,
            template=EmailTemplate.BRIEFING_READY.value,
            params={
                "creator_name": creator.first_name,
                "casting_title": casting.title,
                "briefings_url": creator_briefings_url(),
            },
        )
        for creator in creators
    ]


def activate_shooting(db: Session, casting: Casting, *, source: str) -> bool:
    """Move an approved casting into shooting once its briefing is approved.

    Shared by briefing linking and briefing approval. Only the caller whose
    conditional update wins runs folder provisioning and the notification batch.
    """
    if casting.status != CastingStatus.APPROVED_BY_CLIENT.value:
        return False
    if not transition_casting_status(
        db, casting.id, CastingStatus.APPROVED_BY_CLIENT.value, CastingStatus.SHOOTING.value
    ):
        return False
    db.commit()

    creators = client_selected_creators(db, casting.id)
    provision_creator_folders(db, casting, creators)
    notification_queue.queue_emails(briefing_ready_jobs(casting, creators))
    invalidate_views(*casting_view_paths(casting.id))
    logger.info("shooting_activated casting_id=%s source=%s creators=%s", casting.id, source, len(creators))
    return True
