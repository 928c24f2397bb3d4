from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.application.services import casting_workflow_service as workflow
from app.application.services.casting_state import transition_casting_status
from app.domain.models.automation_log import AutomationLog
from app.domain.models.automation_rule import AutomationAction, AutomationRule
from app.domain.models.briefing import Briefing, BriefingStatus, CastingBriefingLink
from app.domain.models.casting import (
    Casting,
    CastingInvitation,
    CastingSelection,
    CastingStatus,
    InvitationStatus,
    SelectionRole,
)
from app.domain.models.creator_submission import CreatorSubmission, SubmissionStatus


def _templates_by_recipient(jobs) -> dict[str, str]:
    return {job.recipient: job.template for job in jobs}


def test_full_casting_flow_without_approved_briefing(db_session, world, make_casting, sent_emails, fake_storage):
    casting = make_casting(max_creators=2)
    ana, ben, chloe, _ = world.creators

    invited = workflow.send_invitations(db_session, world.team, casting.id, [ana.id, ben.id, chloe.id])
    assert invited.success
    assert len(invited.data) == 3
    assert db_session.get(Casting, casting.id).status == CastingStatus.INVITING.value
    assert [job.template for job in sent_emails] == ["casting_invite"] * 3

    invitations = {item.creator_id: item for item in invited.data}
    for creator_index, accept in ((0, True), (1, True)):
        actor = world.creator_actors[creator_index]
        answered = workflow.respond_to_invitation(
            db_session, actor, invitations[actor.creator_id].id, accept=accept
        )
        assert answered.success
        assert answered.data.status == InvitationStatus.ACCEPTED.value

    for new_status in (CastingStatus.CHECK_INTERN, CastingStatus.SEND_CLIENT_FEEDBACK):
        updated = workflow.update_casting(db_session, world.team, casting.id, {"status": new_status.value})
        assert updated.success, updated.error
    assert sent_emails[-1].template == "casting_ready_for_review"
    assert sent_emails[-1].recipient == world.client_user.email

    shortlist = workflow.select_creators_for_client(db_session, world.team, casting.id, [ana.id, ben.id])
    assert shortlist.success

    sent_emails.clear()
    final = workflow.select_final_creators(db_session, world.client_actor, casting.id, [ana.id])
    assert final.success, final.error
    assert final.data == {
        "casting_id": str(casting.id),
        "status": CastingStatus.APPROVED_BY_CLIENT.value,
        "chosen_count": 1,
        "not_selected_count": 1,
        "no_response_count": 1,
    }
    assert _templates_by_recipient(sent_emails) == {
        ana.email: "casting_approved_no_briefing",
        ben.email: "casting_not_selected",
        chloe.email: "casting_closed_no_response",
    }
    assert fake_storage.created == []

    submissions = db_session.execute(
        select(CreatorSubmission).where(CreatorSubmission.casting_id == casting.id)
    ).scalars().all()
    assert [(item.creator_id, item.submission_status) for item in submissions] == [
        (ana.id, SubmissionStatus.PENDING.value)
    ]


def test_final_selection_with_approved_briefing_starts_shooting(
    db_session, world, make_casting, sent_emails, fake_storage
):
    ana, ben, _, _ = world.creators
    casting = make_casting(
        status=CastingStatus.SEND_CLIENT_FEEDBACK,
        invited={0: InvitationStatus.ACCEPTED, 1: InvitationStatus.REJECTED},
    )
    briefing = Briefing(client_id=world.client.id, title="Brief", content={}, status=BriefingStatus.APPROVED.value)
    db_session.add(briefing)
    db_session.flush()
    db_session.add(CastingBriefingLink(casting_id=casting.id, briefing_id=briefing.id))
    db_session.commit()

    final = workflow.select_final_creators(db_session, world.team, casting.id, [ana.id])

    assert final.success, final.error
    assert final.data["status"] == CastingStatus.SHOOTING.value
    # Rejected invitations are in no audience.
    assert _templates_by_recipient(sent_emails) == {ana.email: "casting_approved_with_briefing"}
    assert fake_storage.root_calls == ["acme-root"]
    assert fake_storage.created == [("Ana Costa", "Summer Campaign")]

    submission = db_session.execute(
        select(CreatorSubmission).where(CreatorSubmission.casting_id == casting.id)
    ).scalar_one()
    assert submission.drive_folder_id == "folder-1"
    assert submission.drive_folder_url == "https://drive.google.com/drive/folders/folder-1"
    assert submission.drive_folder_created_at is not None


def test_one_creator_folder_failure_does_not_stop_the_others(
    db_session, world, make_casting, sent_emails, fake_storage
):
    ana, ben, _, _ = world.creators
    casting = make_casting(
        status=CastingStatus.SEND_CLIENT_FEEDBACK,
        invited={0: InvitationStatus.ACCEPTED, 1: InvitationStatus.ACCEPTED},
    )
    briefing = Briefing(client_id=world.client.id, title="Brief", content={}, status=BriefingStatus.APPROVED.value)
    db_session.add(briefing)
    db_session.flush()
    db_session.add(CastingBriefingLink(casting_id=casting.id, briefing_id=briefing.id))
    db_session.commit()
    fake_storage.fail_for.add("Ana Costa")

    final = workflow.select_final_creators(db_session, world.team, casting.id, [ana.id, ben.id])

    assert final.success, final.error
    assert final.data["status"] == CastingStatus.SHOOTING.value
    assert fake_storage.created == [("Ben Keller", "Summer Campaign")]
    folders = dict(
        db_session.execute(
            select(CreatorSubmission.creator_id, CreatorSubmission.drive_folder_id).where(
                CreatorSubmission.casting_id == casting.id
            )
        ).all()
    )
    assert folders == {ana.id: None, ben.id: "folder-1"}
    assert _templates_by_recipient(sent_emails) == {
        ana.email: "casting_approved_with_briefing",
        ben.email: "casting_approved_with_briefing",
    }


def test_final_selection_over_limit_inserts_nothing(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SEND_CLIENT_FEEDBACK, max_creators=1)

    result = workflow.select_final_creators(
        db_session, world.client_actor, casting.id, [world.creators[0].id, world.creators[1].id]
    )

    assert not result.success
    assert result.error_code == "limit_exceeded"
    assert db_session.execute(select(func.count(CastingSelection.id))).scalar_one() == 0
    assert db_session.execute(select(func.count(CreatorSubmission.id))).scalar_one() == 0
    assert db_session.get(Casting, casting.id).status == CastingStatus.SEND_CLIENT_FEEDBACK.value


def test_final_selection_requires_client_feedback_status(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.INVITING)

    result = workflow.select_final_creators(db_session, world.client_actor, casting.id, [world.creators[0].id])

    assert result.error_code == "invalid_state"


def test_final_selection_rejects_other_clients_and_creators(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.SEND_CLIENT_FEEDBACK)

    other = workflow.select_final_creators(db_session, world.other_client_actor, casting.id, [world.creators[0].id])
    creator = workflow.select_final_creators(
        db_session, world.creator_actors[0], casting.id, [world.creators[0].id]
    )

    assert other.error_code == "unauthorized"
    assert creator.error_code == "unauthorized"


def test_send_invitations_requires_draft(db_session, world, make_casting, sent_emails):
    casting = make_casting(status=CastingStatus.INVITING)

    result = workflow.send_invitations(db_session, world.team, casting.id, [world.creators[0].id])

    assert result.error_code == "invalid_state"
    assert db_session.execute(select(func.count(CastingInvitation.id))).scalar_one() == 0
    assert sent_emails == []


def test_send_invitations_unknown_creator(db_session, world, make_casting):
    casting = make_casting()

    result = workflow.send_invitations(db_session, world.team, casting.id, [world.creators[0].id, uuid4()])

    assert result.error_code == "not_found"
    assert db_session.get(Casting, casting.id).status == CastingStatus.DRAFT.value


def test_send_invitations_is_team_only(db_session, world, make_casting):
    casting = make_casting()

    result = workflow.send_invitations(db_session, world.client_actor, casting.id, [world.creators[0].id])

    assert result.error_code == "unauthorized"


def test_guarded_transition_has_one_winner(db_session, make_casting):
    casting = make_casting(status=CastingStatus.APPROVED_BY_CLIENT)

    first = transition_casting_status(
        db_session, casting.id, CastingStatus.APPROVED_BY_CLIENT.value, CastingStatus.SHOOTING.value
    )
    second = transition_casting_status(
        db_session, casting.id, CastingStatus.APPROVED_BY_CLIENT.value, CastingStatus.SHOOTING.value
    )
    db_session.commit()

    assert (first, second) == (True, False)
    assert db_session.get(Casting, casting.id).status == CastingStatus.SHOOTING.value


def test_partition_is_disjoint_and_skips_rejected():
    creators = [SimpleNamespace(id=uuid4(), email=f"c{index}@example.com") for index in range(5)]
    statuses = [
        InvitationStatus.ACCEPTED,
        InvitationStatus.ACCEPTED,
        InvitationStatus.PENDING,
        InvitationStatus.REJECTED,
        InvitationStatus.PENDING,
    ]
    invitations = [
        (SimpleNamespace(status=status.value), creator) for status, creator in zip(statuses, creators)
    ]

    partition = workflow.partition_notification_recipients(invitations, [creators[0], creators[4]])

    assert partition.chosen == [creators[0], creators[4]]
    assert partition.accepted_not_chosen == [creators[1]]
    assert partition.never_responded == [creators[2]]
    audiences = partition.chosen + partition.accepted_not_chosen + partition.never_responded
    assert len({creator.id for creator in audiences}) == len(audiences)
    assert creators[3] not in audiences


def test_shortlist_appends_duplicates(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.CHECK_INTERN)
    ana = world.creators[0]

    workflow.select_creators_for_client(db_session, world.team, casting.id, [ana.id])
    workflow.select_creators_for_client(db_session, world.team, casting.id, [ana.id])

    rows = db_session.execute(
        select(CastingSelection).where(CastingSelection.casting_id == casting.id)
    ).scalars().all()
    assert len(rows) == 2
    assert {row.selected_by_role for row in rows} == {SelectionRole.SOCIAL_BUBBLE.value}
    snapshot = workflow.get_casting(db_session, world.team, casting.id).data
    assert snapshot.social_bubble_selected_count == 1


def test_invitation_can_only_be_answered_once(db_session, world, make_casting):
    casting = make_casting(status=CastingStatus.INVITING, invited={0: InvitationStatus.PENDING})
    invitation = db_session.execute(
        select(CastingInvitation).where(CastingInvitation.casting_id == casting.id)
    ).scalar_one()

    stranger = workflow.respond_to_invitation(db_session, world.creator_actors[1], invitation.id, accept=True)
    declined = workflow.respond_to_invitation(
        db_session, world.creator_actors[0], invitation.id, accept=False, reason="Travelling"
    )
    again = workflow.respond_to_invitation(db_session, world.creator_actors[0], invitation.id, accept=True)

    assert stranger.error_code == "unauthorized"
    assert declined.success
    assert declined.data.rejection_reason == "Travelling"
    assert again.error_code == "invalid_state"


def test_client_visibility(db_session, world, make_casting):
    draft = make_casting(title="Hidden draft")
    review = make_casting(title="In review", status=CastingStatus.SEND_CLIENT_FEEDBACK)
    make_casting(title="Other client", status=CastingStatus.SEND_CLIENT_FEEDBACK, client=world.other_client)

    listed = workflow.list_castings(db_session, world.client_actor)
    hidden = workflow.get_casting(db_session, world.client_actor, draft.id)

    assert [snapshot.casting.id for snapshot in listed.data] == [review.id]
    assert hidden.error_code == "unauthorized"
    assert len(workflow.list_castings(db_session, world.team).data) == 3


def test_creators_for_casting_is_empty_for_non_team(db_session, world):
    assert workflow.get_creators_for_casting(db_session, world.client_actor).data == []
    assert len(workflow.get_creators_for_casting(db_session, world.team).data) == 4


def test_manual_transition_table_is_enforced(db_session, world, make_casting):
    casting = make_casting()

    skipped = workflow.update_casting(db_session, world.team, casting.id, {"status": CastingStatus.SHOOTING.value})
    client_edit = workflow.update_casting(
        db_session, world.client_actor, casting.id, {"status": CastingStatus.INVITING.value}
    )

    assert skipped.error_code == "invalid_state"
    assert client_edit.error_code == "invalid_state"
    assert db_session.get(Casting, casting.id).status == CastingStatus.DRAFT.value


def test_create_casting_defaults_title(db_session, world):
    make_first = workflow.create_casting(db_session, world.team, client_id=world.client.id, max_creators=3)
    make_second = workflow.create_casting(db_session, world.team, client_id=world.client.id, max_creators=3)
    forbidden = workflow.create_casting(db_session, world.client_actor, client_id=world.client.id, max_creators=3)

    assert make_first.data.title == "Acme Studios casting #1"
    assert make_second.data.title == "Acme Studios casting #2"
    assert make_first.data.status == CastingStatus.DRAFT.value
    assert forbidden.error_code == "unauthorized"


def test_status_change_runs_matching_automation(db_session, world, make_casting, fake_slack):
    casting = make_casting(status=CastingStatus.INVITING)
    rule = AutomationRule(
        trigger_name="casting_status_changed",
        name="Tell the team",
        conditions_json={"all": [{"field": "newStatus", "operator": "equals", "value": "check_intern"}]},
        execution_order=0,
    )
    db_session.add(rule)
    db_session.flush()
    db_session.add(
        AutomationAction(
            rule_id=rule.id,
            name="Slack",
            action_type="slack_notification",
            configuration_json={
                "channel_id": "C1",
                "message_template": "{{castingTitle}}: {{previousStatus}} -> {{newStatus}} by {{changedBy}}",
            },
        )
    )
    db_session.commit()

    result = workflow.update_casting(
        db_session, world.team, casting.id, {"status": CastingStatus.CHECK_INTERN.value}
    )

    assert result.success
    assert fake_slack.posts == [
        {
            "channel": "C1",
            "text": "Summer Campaign: inviting -> check_intern by team@casting.test",
            "blocks": None,
        }
    ]
    logs = db_session.execute(select(AutomationLog)).scalars().all()
    assert [log.status for log in logs] == ["success"]


@pytest.mark.parametrize(
    ("briefing_status", "expected_status", "expected_template"),
    [
        (None, CastingStatus.APPROVED_BY_CLIENT, "casting_approved_no_briefing"),
        (BriefingStatus.APPROVED, CastingStatus.SHOOTING, "casting_approved_with_briefing"),
        (BriefingStatus.DRAFT, CastingStatus.APPROVED_BY_CLIENT, "casting_approved_no_briefing"),
    ],
)
def test_two_of_three_scenario(
    db_session, world, make_casting, sent_emails, briefing_status, expected_status, expected_template
):
    casting = make_casting(max_creators=3)
    ana, ben, chloe, _ = world.creators
    if briefing_status is not None:
        briefing = Briefing(client_id=world.client.id, title="Brief", content={}, status=briefing_status.value)
        db_session.add(briefing)
        db_session.flush()
        db_session.add(CastingBriefingLink(casting_id=casting.id, briefing_id=briefing.id))
        db_session.commit()

    invitations = workflow.send_invitations(db_session, world.team, casting.id, [ana.id, ben.id, chloe.id]).data
    by_creator = {invitation.creator_id: invitation.id for invitation in invitations}
    workflow.respond_to_invitation(db_session, world.creator_actors[0], by_creator[ana.id], accept=True)
    workflow.respond_to_invitation(db_session, world.creator_actors[1], by_creator[ben.id], accept=True)
    for new_status in (CastingStatus.CHECK_INTERN, CastingStatus.SEND_CLIENT_FEEDBACK):
        workflow.update_casting(db_session, world.team, casting.id, {"status": new_status.value})
    workflow.select_creators_for_client(db_session, world.team, casting.id, [ana.id, ben.id])
    sent_emails.clear()

    final = workflow.select_final_creators(db_session, world.client_actor, casting.id, [ana.id, ben.id])

    assert final.data["status"] == expected_status.value
    assert _templates_by_recipient(sent_emails) == {
        ana.email: expected_template,
        ben.email: expected_template,
        chloe.email: "casting_closed_no_response",
    }
