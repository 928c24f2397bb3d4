import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["VIEW_INVALIDATION_ENABLED"] = "false"
os.environ["AUTOMATION_DISPATCH_MODE"] = "inline"
os.environ["AUTOMATION_ADMIN_EMAILS"] = ""
os.environ["APP_URL"] = "https://casting.test"

from dataclasses import dataclass, field
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.application.services import notification_queue
from app.core.actor import ClientActor, CreatorActor, SocialBubbleActor
from app.domain.models.casting import Casting, CastingInvitation, CastingStatus, InvitationStatus
from app.domain.models.client import Client
from app.domain.models.creator import Creator
from app.domain.models.user import User, UserRole
from app.infrastructure.db.base import Base
from app.infrastructure.db.session import get_db
from app.integrations import storage_provisioning
from app.integrations.action_executors import slack_executor
from app.integrations.slack_client import SlackApiError
from app.integrations.storage_provisioning import ProvisionedFolder, StorageProvisioner, StorageProvisioningError
from main import app


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    jobs: list[notification_queue.EmailJob] = []

    def fake_queue_emails(batch):
        jobs.extend(batch)
        return len(batch)

    monkeypatch.setattr(notification_queue, "queue_emails", fake_queue_emails)
    return jobs


class FakeStorageProvisioner(StorageProvisioner):
    def __init__(self) -> None:
        self.root_calls: list[str] = []
        self.created: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()
        self.root_errors: list[Exception] = []

    def ensure_root_folder(self, client_folder_id: str) -> str:
        self.root_calls.append(client_folder_id)
        if self.root_errors:
            raise self.root_errors.pop(0)
        return f"{client_folder_id}-raw"

    def create_subfolder(self, raw_folder_id: str, creator_name: str, casting_title: str) -> ProvisionedFolder:
        if creator_name in self.fail_for:
            raise StorageProvisioningError(f"quota exceeded for {creator_name}")
        self.created.append((creator_name, casting_title))
        folder_id = f"folder-{len(self.created)}"
        return ProvisionedFolder(folder_id=folder_id, folder_url=storage_provisioning.folder_url(folder_id))


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    provisioner = FakeStorageProvisioner()
    monkeypatch.setattr(storage_provisioning, "get_storage_provisioner", lambda: provisioner)
    return provisioner


@dataclass
class FakeSlackClient:
    posts: list[dict] = field(default_factory=list)
    joined: list[str] = field(default_factory=list)
    not_in_channel: set[str] = field(default_factory=set)
    failing_error: str | None = None

    def post_message(self, channel, text, blocks=None):
        if self.failing_error:
            raise SlackApiError(self.failing_error, "chat.postMessage")
        if channel in self.not_in_channel and channel not in self.joined:
            raise SlackApiError("not_in_channel", "chat.postMessage")
        self.posts.append({"channel": channel, "text": text, "blocks": blocks})
        return {"ok": True}

    def join_channel(self, channel):
        self.joined.append(channel)


@pytest.fixture(autouse=True)
def fake_slack(monkeypatch):
    slack = FakeSlackClient()
    monkeypatch.setattr(slack_executor, "get_slack_client", lambda: slack)
    return slack


@pytest.fixture
def world(db_session):
    client = Client(company_name="Acme Studios", contact_email="acme@example.com", drive_folder_id="acme-root")
    other_client = Client(company_name="Other Brand", contact_email="other@example.com")
    db_session.add_all([client, other_client])
    db_session.flush()

    creators = [
        Creator(first_name="Ana", last_name="Costa", email="ana@example.com"),
        Creator(first_name="Ben", last_name="Keller", email="ben@example.com"),
        Creator(first_name="Chloe", last_name="Martin", email="chloe@example.com"),
        Creator(first_name="Dev", last_name="Rao", email="dev@example.com"),
    ]
    db_session.add_all(creators)
    db_session.flush()

    team_user = User(external_id="team-1", email="team@casting.test", role=UserRole.SOCIAL_BUBBLE.value)
    client_user = User(
        external_id="client-1",
        email="buyer@acme.test",
        role=UserRole.CLIENT.value,
        client_id=client.id,
    )
    other_client_user = User(
        external_id="client-2",
        email="buyer@other.test",
        role=UserRole.CLIENT.value,
        client_id=other_client.id,
    )
    creator_users = [
        User(
            external_id=f"creator-{index}",
            email=creator.email,
            role=UserRole.CREATOR.value,
            creator_id=creator.id,
        )
        for index, creator in enumerate(creators)
    ]
    db_session.add_all([team_user, client_user, other_client_user, *creator_users])
    db_session.commit()

    return SimpleNamespace(
        client=client,
        other_client=other_client,
        creators=creators,
        team_user=team_user,
        client_user=client_user,
        team=SocialBubbleActor(user_id=team_user.id, email=team_user.email),
        client_actor=ClientActor(user_id=client_user.id, email=client_user.email, client_id=client.id),
        other_client_actor=ClientActor(
            user_id=other_client_user.id,
            email=other_client_user.email,
            client_id=other_client.id,
        ),
        creator_actors=[
            CreatorActor(user_id=user.id, email=user.email, creator_id=user.creator_id) for user in creator_users
        ],
    )


@pytest.fixture
def make_casting(db_session, world):
    def _make(
        *,
        status: CastingStatus = CastingStatus.DRAFT,
        max_creators: int = 2,
        title: str = "Summer Campaign",
        invited: dict[int, InvitationStatus] | None = None,
        client: Client | None = None,
    ) -> Casting:
        casting = Casting(
            client_id=(client or world.client).id,
            title=title,
            status=status.value,
            max_creators=max_creators,
            compensation=Decimal("300.00"),
            created_by=world.team_user.id,
        )
        db_session.add(casting)
        db_session.flush()
        for index, invitation_status in (invited or {}).items():
            db_session.add(
                CastingInvitation(
                    casting_id=casting.id,
                    creator_id=world.creators[index].id,
                    status=invitation_status.value,
                )
            )
        db_session.commit()
        return casting

    return _make
