from sqlalchemy import select

from app.application.services import creator_submission_service as submissions
from app.domain.models.briefing import Briefing, BriefingStatus, CastingBriefingLink
from app.domain.models.casting import Casting, CastingStatus
from app.domain.models.creator_submission import CreatorSubmission, SubmissionStatus


def _submission(db, casting, creator, status=SubmissionStatus.PENDING):
    submission = CreatorSubmission(casting_id=casting.id, creator_id=creator.id, submission_status=status.value)
    db.add(submission)
    db.commit()
    return submission


def _reload(db, submission) -> CreatorSubmission:
    db.expire_all()
    return db.execute(select(CreatorSubmission).where(CreatorSubmission.id == submission.id)).scalar_one()


def test_creator_submits_own_work(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    submission = _submission(db_session, casting, world.creators[0])

    result = submissions.submit_creator_work(db_session, world.creator_actors[0], casting.id)
    again = submissions.submit_creator_work(db_session, world.creator_actors[0], casting.id)

    assert result.success
    assert result.data.submission_status == SubmissionStatus.PENDING_REVIEW.value
    assert result.data.submitted_at is not None
    assert again.error_code == "invalid_state"
    assert _reload(db_session, submission).submission_status == SubmissionStatus.PENDING_REVIEW.value


def test_submit_on_behalf_rules(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    _submission(db_session, casting, world.creators[0])

    missing_creator = submissions.submit_creator_work(db_session, world.team, casting.id)
    other_creator = submissions.submit_creator_work(
        db_session, world.creator_actors[1], casting.id, world.creators[0].id
    )
    client = submissions.submit_creator_work(db_session, world.client_actor, casting.id, world.creators[0].id)
    team = submissions.submit_creator_work(db_session, world.team, casting.id, world.creators[0].id)

    assert missing_creator.error_code == "validation_error"
    assert other_creator.error_code == "unauthorized"
    assert client.error_code == "unauthorized"
    assert team.success


def test_submit_without_assignment_is_not_found(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)

    result = submissions.submit_creator_work(db_session, world.creator_actors[2], casting.id)

    assert result.error_code == "not_found"


def test_reject_without_feedback_changes_nothing(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    submission = _submission(db_session, casting, world.creators[0], SubmissionStatus.PENDING_REVIEW)

    result = submissions.review_creator_submission(
        db_session, world.team, casting.id, world.creators[0].id, approved=False, feedback="   "
    )

    assert result.error_code == "validation_error"
    reloaded = _reload(db_session, submission)
    assert reloaded.submission_status == SubmissionStatus.PENDING_REVIEW.value
    assert reloaded.feedback is None


def test_revision_cycle(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    ana = world.creators[0]
    _submission(db_session, casting, ana, SubmissionStatus.PENDING_REVIEW)

    rejected = submissions.review_creator_submission(
        db_session, world.team, casting.id, ana.id, approved=False, feedback="Reshoot the intro"
    )
    assert rejected.data.submission_status == SubmissionStatus.REVISION_REQUESTED.value
    assert rejected.data.feedback == "Reshoot the intro"
    assert rejected.data.feedback_by == world.team_user.id
    assert rejected.data.approved_at is None

    resubmitted = submissions.submit_creator_work(db_session, world.creator_actors[0], casting.id)
    assert resubmitted.data.submission_status == SubmissionStatus.PENDING_REVIEW.value

    approved = submissions.review_creator_submission(db_session, world.team, casting.id, ana.id, approved=True)
    assert approved.data.submission_status == SubmissionStatus.APPROVED.value
    assert approved.data.approved_by == world.team_user.id
    assert approved.data.feedback is None

    late = submissions.review_creator_submission(db_session, world.team, casting.id, ana.id, approved=True)
    assert late.error_code == "invalid_state"


def test_approval_moves_waiting_casting_to_shooting(db_session, world, make_casting, sent_emails, fake_storage):
    casting = make_casting(status=CastingStatus.APPROVED_BY_CLIENT)
    _submission(db_session, casting, world.creators[0], SubmissionStatus.PENDING_REVIEW)

    result = submissions.review_creator_submission(
        db_session, world.team, casting.id, world.creators[0].id, approved=True, feedback="Great"
    )

    assert result.success
    assert db_session.get(Casting, casting.id).status == CastingStatus.SHOOTING.value
    assert sent_emails == []
    assert fake_storage.created == []


def test_review_is_team_only(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    _submission(db_session, casting, world.creators[0], SubmissionStatus.PENDING_REVIEW)

    result = submissions.review_creator_submission(
        db_session, world.client_actor, casting.id, world.creators[0].id, approved=True
    )

    assert result.error_code == "unauthorized"


def test_content_link_must_be_http(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    _submission(db_session, casting, world.creators[0])
    creator_id = world.creators[0].id

    invalid = submissions.update_content_link(db_session, world.team, casting.id, creator_id, "ftp://files")
    valid = submissions.update_content_link(
        db_session, world.team, casting.id, creator_id, " https://cdn.example.com/cut.mp4 "
    )
    assert invalid.error_code == "validation_error"
    assert valid.data.content_upload_link == "https://cdn.example.com/cut.mp4"

    cleared = submissions.update_content_link(db_session, world.team, casting.id, creator_id, "")
    assert cleared.data.content_upload_link is None


def test_team_lists_submissions_with_creators(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    _submission(db_session, casting, world.creators[1])
    _submission(db_session, casting, world.creators[0])

    result = submissions.get_creator_submissions(db_session, world.team, casting.id)
    forbidden = submissions.get_creator_submissions(db_session, world.client_actor, casting.id)

    assert [item["creator"].first_name for item in result.data] == ["Ana", "Ben"]
    assert forbidden.error_code == "unauthorized"


def test_creator_briefings_lists_assignments_with_linked_briefings(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SHOOTING)
    make_casting(title="Not mine", status=CastingStatus.SHOOTING)
    _submission(db_session, casting, world.creators[0])
    briefing = Briefing(client_id=world.client.id, title="Shot list", content={}, status=BriefingStatus.APPROVED.value)
    db_session.add(briefing)
    db_session.flush()
    db_session.add(CastingBriefingLink(casting_id=casting.id, briefing_id=briefing.id))
    db_session.commit()

    mine = submissions.get_creator_briefings(db_session, world.creator_actors[0])
    nothing = submissions.get_creator_briefings(db_session, world.creator_actors[3])
    team = submissions.get_creator_briefings(db_session, world.team)

    [assignment] = mine.data
    assert assignment["casting"].id == casting.id
    assert [item.title for item in assignment["briefings"]] == ["Shot list"]
    assert nothing.data == []
    assert team.error_code == "unauthorized"
