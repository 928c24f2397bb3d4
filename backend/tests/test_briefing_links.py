from sqlalchemy import select

from app.application.services import briefing_service, notification_queue
from app.domain.models.briefing import Briefing, BriefingStatus, CastingBriefingLink
from app.domain.models.casting import Casting, CastingSelection, CastingStatus, SelectionRole
from app.domain.models.creator_submission import CreatorSubmission


def _briefing(db, client, *, status=BriefingStatus.DRAFT, title="Brief"):
    briefing = Briefing(client_id=client.id, title=title, content={"blocks": []}, status=status.value)
    db.add(briefing)
    db.commit()
    return briefing


def _client_choice(db, casting, creator):
    db.add(
        CastingSelection(
            casting_id=casting.id,
            creator_id=creator.id,
            selected_by_role=SelectionRole.CLIENT.value,
        )
    )
    db.add(CreatorSubmission(casting_id=casting.id, creator_id=creator.id))
    db.commit()


def test_link_and_unlink_round_trip(db_session, world, make_casting):
    casting = make_casting()
    briefing = _briefing(db_session, world.client)

    linked = briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)
    duplicate = briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)

    assert linked.success
    assert linked.data.linked_by == world.team_user.id
    assert duplicate.error_code == "validation_error"
    assert [item.id for item in briefing_service.get_casting_briefings(db_session, world.team, casting.id).data] == [
        briefing.id
    ]

    unlinked = briefing_service.unlink_briefing(db_session, world.team, casting.id, briefing.id)
    again = briefing_service.unlink_briefing(db_session, world.team, casting.id, briefing.id)

    assert unlinked.data == {"casting_id": str(casting.id), "briefing_id": str(briefing.id)}
    assert again.error_code == "not_found"
    assert db_session.execute(select(CastingBriefingLink)).first() is None


def test_link_rejects_other_clients_briefing(db_session, world, make_casting):
    casting = make_casting()
    briefing = _briefing(db_session, world.other_client)

    result = briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)

    assert result.error_code == "validation_error"


def test_linking_is_team_only(db_session, world, make_casting):
    casting = make_casting()
    briefing = _briefing(db_session, world.client)

    result = briefing_service.link_briefing(db_session, world.client_actor, casting.id, briefing.id)

    assert result.error_code == "unauthorized"


def test_linking_approved_briefing_starts_shooting(db_session, world, make_casting, sent_emails, fake_storage):
    casting = make_casting(status=CastingStatus.APPROVED_BY_CLIENT)
    _client_choice(db_session, casting, world.creators[1])
    briefing = _briefing(db_session, world.client, status=BriefingStatus.APPROVED)

    result = briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)

    assert result.success
    assert db_session.get(Casting, casting.id).status == CastingStatus.SHOOTING.value
    assert fake_storage.created == [("Ben Keller", "Summer Campaign")]
    assert [(job.recipient, job.template) for job in sent_emails] == [("ben@example.com", "briefing_ready")]


def test_linking_draft_briefing_keeps_status(db_session, world, make_casting, sent_emails, fake_storage):
    casting = make_casting(status=CastingStatus.APPROVED_BY_CLIENT)
    briefing = _briefing(db_session, world.client)

    briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)

    assert db_session.get(Casting, casting.id).status == CastingStatus.APPROVED_BY_CLIENT.value
    assert fake_storage.created == []
    assert sent_emails == []


def test_approving_briefing_propagates_to_linked_castings(db_session, world, make_casting, sent_emails):
    waiting = make_casting(title="Waiting", status=CastingStatus.APPROVED_BY_CLIENT)
    still_open = make_casting(title="Still open", status=CastingStatus.SEND_CLIENT_FEEDBACK)
    _client_choice(db_session, waiting, world.creators[0])
    briefing = _briefing(db_session, world.client)
    for casting in (waiting, still_open):
        assert briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id).success

    result = briefing_service.update_briefing(
        db_session, world.team, briefing.id, {"status": BriefingStatus.APPROVED.value}
    )

    assert result.success
    assert db_session.get(Casting, waiting.id).status == CastingStatus.SHOOTING.value
    assert db_session.get(Casting, still_open.id).status == CastingStatus.SEND_CLIENT_FEEDBACK.value
    assert [job.template for job in sent_emails] == ["briefing_ready"]

    # Re-saving an approved briefing is not a new approval.
    sent_emails.clear()
    briefing_service.update_briefing(db_session, world.team, briefing.id, {"status": BriefingStatus.APPROVED.value})
    assert sent_emails == []


def test_update_briefing_validates_patch(db_session, world, make_casting):
    casting = make_casting()
    briefing = _briefing(db_session, world.client)
    briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id)

    bad_status = briefing_service.update_briefing(db_session, world.team, briefing.id, {"status": "published"})
    bad_field = briefing_service.update_briefing(db_session, world.team, briefing.id, {"owner": "x"})
    moved = briefing_service.update_briefing(
        db_session, world.team, briefing.id, {"client_id": world.other_client.id}
    )

    assert bad_status.error_code == "validation_error"
    assert bad_field.error_code == "validation_error"
    assert moved.error_code == "validation_error"
    assert db_session.get(Briefing, briefing.id).client_id == world.client.id


def test_create_briefing(db_session, world):
    created = briefing_service.create_briefing(
        db_session, world.team, client_id=world.client.id, title="  Launch brief ", content={"goal": "awareness"}
    )
    blank = briefing_service.create_briefing(db_session, world.team, client_id=world.client.id, title=" ")

    assert created.data.title == "Launch brief"
    assert created.data.status == BriefingStatus.DRAFT.value
    assert blank.error_code == "validation_error"


def test_available_briefings_exclude_ones_used_by_the_client(db_session, world, make_casting):
    first = make_casting(title="First")
    second = make_casting(title="Second", status=CastingStatus.SEND_CLIENT_FEEDBACK)
    used = _briefing(db_session, world.client, title="Used", status=BriefingStatus.APPROVED)
    free_draft = _briefing(db_session, world.client, title="Free draft")
    free_approved = _briefing(db_session, world.client, title="Free approved", status=BriefingStatus.APPROVED)
    _briefing(db_session, world.other_client, title="Foreign")
    briefing_service.link_briefing(db_session, world.team, first.id, used.id)

    for_team = briefing_service.get_available_briefings_for_casting(db_session, world.team, second.id)
    for_client = briefing_service.get_available_briefings_for_casting(db_session, world.client_actor, second.id)
    for_stranger = briefing_service.get_available_briefings_for_casting(
        db_session, world.other_client_actor, second.id
    )

    assert {item.id for item in for_team.data} == {free_draft.id, free_approved.id}
    assert [item.id for item in for_client.data] == [free_approved.id]
    assert for_stranger.error_code == "unauthorized"


def test_available_castings_skip_done_and_linked(db_session, world, make_casting):
    open_casting = make_casting(title="Open")
    linked = make_casting(title="Linked")
    make_casting(title="Finished", status=CastingStatus.DONE)
    make_casting(title="Elsewhere", client=world.other_client)
    briefing = _briefing(db_session, world.client)
    briefing_service.link_briefing(db_session, world.team, linked.id, briefing.id)

    result = briefing_service.get_available_castings_for_briefing(db_session, world.team, briefing.id)
    castings = briefing_service.get_briefing_castings(db_session, world.team, briefing.id)

    assert [item.id for item in result.data] == [open_casting.id]
    assert [item.id for item in castings.data] == [linked.id]


def test_creators_cannot_list_casting_briefings(db_session, world, make_casting):
    casting = make_casting()

    result = briefing_service.get_casting_briefings(db_session, world.creator_actors[0], casting.id)

    assert result.error_code == "unauthorized"


def test_root_folder_error_does_not_block_briefing_approval(
    db_session, world, make_casting, sent_emails, fake_storage
):
    first = make_casting(title="First", status=CastingStatus.APPROVED_BY_CLIENT)
    second = make_casting(title="Second", status=CastingStatus.APPROVED_BY_CLIENT)
    _client_choice(db_session, first, world.creators[0])
    _client_choice(db_session, second, world.creators[1])
    briefing = _briefing(db_session, world.client)
    for casting in (first, second):
        assert briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id).success
    fake_storage.root_errors.append(ValueError("Service account info was not in the expected format"))

    result = briefing_service.update_briefing(
        db_session, world.team, briefing.id, {"status": BriefingStatus.APPROVED.value}
    )

    assert result.success, result.error
    assert {db_session.get(Casting, casting.id).status for casting in (first, second)} == {
        CastingStatus.SHOOTING.value
    }
    assert sorted(job.recipient for job in sent_emails) == ["ana@example.com", "ben@example.com"]
    assert len(fake_storage.root_calls) == 2
    assert len(fake_storage.created) == 1


def test_failure_in_one_casting_does_not_stop_the_next(db_session, world, make_casting, monkeypatch):
    first = make_casting(title="First", status=CastingStatus.APPROVED_BY_CLIENT)
    second = make_casting(title="Second", status=CastingStatus.APPROVED_BY_CLIENT)
    _client_choice(db_session, first, world.creators[0])
    _client_choice(db_session, second, world.creators[1])
    briefing = _briefing(db_session, world.client)
    for casting in (first, second):
        assert briefing_service.link_briefing(db_session, world.team, casting.id, briefing.id).success

    attempts = []

    def flaky_queue_emails(batch):
        attempts.append(batch)
        if len(attempts) == 1:
            raise RuntimeError("queue unavailable")
        return len(batch)

    monkeypatch.setattr(notification_queue, "queue_emails", flaky_queue_emails)

    result = briefing_service.update_briefing(
        db_session, world.team, briefing.id, {"status": BriefingStatus.APPROVED.value}
    )

    assert result.success, result.error
    db_session.expire_all()
    assert db_session.get(Casting, first.id).status == CastingStatus.SHOOTING.value
    assert db_session.get(Casting, second.id).status == CastingStatus.SHOOTING.value
    assert len(attempts) == 2
