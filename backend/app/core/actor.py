from dataclasses import dataclass
from uuid import UUID

from app.domain.models.user import User, UserRole


class ActorResolutionError(ValueError):
    pass


@dataclass(frozen=True)
class SocialBubbleActor:
    user_id: UUID
    email: str


@dataclass(frozen=True)
class ClientActor:
    user_id: UUID
    email: str
    client_id: UUID


@dataclass(frozen=True)
class CreatorActor:
    user_id: UUID
    email: str
    creator_id: UUID


Actor = SocialBubbleActor | ClientActor | CreatorActor


def resolve_actor(user: User) -> Actor:
    match user.role:
        case UserRole.SOCIAL_BUBBLE:
            return SocialBubbleActor(user_id=user.id, email=user.email)
        case UserRole.CLIENT if user.client_id is not None:
            return ClientActor(user_id=user.id, email=user.email, client_id=user.client_id)
        case UserRole.CREATOR if user.creator_id is not None:
            return CreatorActor(user_id=user.id, email=user.email, creator_id=user.creator_id)
    raise ActorResolutionError(f"User {user.id} has no usable role binding (role={user.role})")
