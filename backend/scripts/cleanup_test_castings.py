import sys

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.domain.models.briefing import CastingBriefingLink
from app.domain.models.casting import Casting, CastingInvitation, CastingSelection
from app.domain.models.creator_submission import CreatorSubmission
from app.infrastructure.db.session import SessionLocal

DEFAULT_TITLE_PREFIX = "Test Casting"

# Children first so the cleanup does not depend on ON DELETE CASCADE being enforced.
CHILD_MODELS = (CreatorSubmission, CastingSelection, CastingInvitation, CastingBriefingLink)


def cleanup_test_castings(db: Session, title_prefix: str = DEFAULT_TITLE_PREFIX, *, dry_run: bool = False) -> list[str]:
    if not title_prefix.strip():
        raise ValueError("title_prefix must not be empty")

    casting_ids = list(
        db.execute(select(Casting.id).where(Casting.title.startswith(title_prefix, autoescape=True))).scalars().all()
    )
    if not casting_ids or dry_run:
        return [str(casting_id) for casting_id in casting_ids]

    for model in CHILD_MODELS:
        db.execute(delete(model).where(model.casting_id.in_(casting_ids)))
    db.execute(delete(Casting).where(Casting.id.in_(casting_ids)))
    db.commit()
    return [str(casting_id) for casting_id in casting_ids]


def main() -> int:
    args = [arg for arg in sys.argv[1:] if arg != "--dry-run"]
    dry_run = "--dry-run" in sys.argv[1:]
    title_prefix = args[0] if args else DEFAULT_TITLE_PREFIX

    with SessionLocal() as db:
        removed = cleanup_test_castings(db, title_prefix, dry_run=dry_run)

    verb = "Would delete" if dry_run else "Deleted"
    print(f"{verb} {len(removed)} casting(s) with title prefix {title_prefix!r}")
    for casting_id in removed:
        print(f"  {casting_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
