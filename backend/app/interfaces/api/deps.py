from typing import Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.application.services.operation_result import OperationResult
from app.core.actor import Actor, ActorResolutionError, resolve_actor
from app.core.security import decode_token
from app.domain.models.user import User
from app.infrastructure.db.session import get_db

bearer_scheme = HTTPBearer(auto_error=False)

ERROR_STATUS_CODES = {
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_state": status.HTTP_409_CONFLICT,
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "limit_exceeded": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "dependency_failure": status.HTTP_502_BAD_GATEWAY,
    "store_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error_code": "unauthenticated", "message": message},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise _unauthenticated("Missing bearer token")
    try:
        claims = decode_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise _unauthenticated("Invalid token") from exc

    if claims.get("type") != "access":
        raise _unauthenticated("Invalid token type")

    subject = claims.get("sub")
    if not subject:
        raise _unauthenticated("Invalid token payload")

    user = db.execute(select(User).where(User.external_id == str(subject))).scalar_one_or_none()
    if user is None:
        raise _unauthenticated("User not found")
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    try:
        return resolve_actor(current_user)
    except ActorResolutionError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error_code": "unauthorized", "message": "User has no usable role"},
        ) from exc


def unwrap_result(result: OperationResult) -> Any:
    if result.success:
        return result.data
    error_code = result.error_code or "store_error"
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(error_code, status.HTTP_400_BAD_REQUEST),
        detail={"error_code": error_code, "message": result.error or "Request failed"},
    )
