from decimal import Decimal

from sqlalchemy import select

from app.application.services.automation_triggers import TriggerName
from app.domain.models.automation_rule import AutomationAction, AutomationActionType, AutomationRule
from app.domain.models.casting import Casting, CastingStatus
from app.domain.models.client import Client
from app.domain.models.creator import Creator
from app.domain.models.user import User, UserRole
from app.infrastructure.db.session import SessionLocal


DEFAULT_CLIENT_NAME = "Casting Center Dev Client"
DEFAULT_SLACK_CHANNEL = "C0DEVCHANNEL"

DEV_CREATORS = (
    ("Ana", "Costa", "ana.creator@castingcenter.local"),
    ("Ben", "Keller", "ben.creator@castingcenter.local"),
    ("Chloe", "Martin", "chloe.creator@castingcenter.local"),
)


def seed_dev_data() -> None:
    with SessionLocal() as db:
        existing_client = db.execute(
            select(Client).where(Client.company_name == DEFAULT_CLIENT_NAME)
        ).scalar_one_or_none()
        if existing_client is not None:
            print(f"Seed exists: client_id={existing_client.id}")
            return

        client = Client(company_name=DEFAULT_CLIENT_NAME, contact_email="client@castingcenter.local")
        db.add(client)
        db.flush()

        creators = [Creator(first_name=first, last_name=last, email=email) for first, last, email in DEV_CREATORS]
        db.add_all(creators)
        db.flush()

        team_user = User(
            external_id="dev-social-bubble",
            email="team@castingcenter.local",
            role=UserRole.SOCIAL_BUBBLE.value,
        )
        client_user = User(
            external_id="dev-client",
            email="client@castingcenter.local",
            role=UserRole.CLIENT.value,
            client_id=client.id,
        )
        creator_users = [
            User(
                external_id=f"dev-creator-{index}",
                email=creator.email,
                role=UserRole.CREATOR.value,
                creator_id=creator.id,
            )
            for index, creator in enumerate(creators, start=1)
        ]
        db.add_all([team_user, client_user, *creator_users])
        db.flush()

        casting = Casting(
            client_id=client.id,
            title=f"{DEFAULT_CLIENT_NAME} casting #1",
            status=CastingStatus.DRAFT.value,
            max_creators=2,
            compensation=Decimal("250.00"),
            created_by=team_user.id,
        )
        db.add(casting)

        rule = AutomationRule(
            trigger_name=TriggerName.CASTING_INVITATION_ACCEPTED.value,
            name="Notify team on accepted invitation",
            description="Posts to the casting channel whenever a creator accepts.",
            conditions_json={},
            execution_order=0,
            is_enabled=True,
            created_by=team_user.id,
        )
        db.add(rule)
        db.flush()
        db.add(
            AutomationAction(
                rule_id=rule.id,
                name="Slack: accepted invitation",
                action_type=AutomationActionType.SLACK_NOTIFICATION.value,
                configuration_json={
                    "channel_id": DEFAULT_SLACK_CHANNEL,
                    "message_template": "{{creatorName}} accepted {{castingTitle}} ({{totalAccepted}}/{{totalInvited}})",
                },
                execution_order=0,
                is_enabled=True,
            )
        )
        db.commit()

        print("Seed created:")
        print(f"client_id={client.id}")
        print(f"casting_id={casting.id}")
        print(f"rule_id={rule.id}")
        print(f"social_bubble_external_id={team_user.external_id}")
        print(f"client_external_id={client_user.external_id}")


if __name__ == "__main__":
    seed_dev_data()
