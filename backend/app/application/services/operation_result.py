import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    error_code: str = "workflow_error"


class UnauthorizedError(WorkflowError):
    error_code = "unauthorized"


class NotFoundError(WorkflowError):
    error_code = "not_found"


class InvalidStateError(WorkflowError):
    error_code = "invalid_state"


class WorkflowValidationError(WorkflowError):
    error_code = "validation_error"


class LimitExceededError(WorkflowValidationError):
    error_code = "limit_exceeded"


class DependencyFailure(WorkflowError):
    """Failure of an outbound collaborator (mail, storage, chat)."""

    error_code = "dependency_failure"


@dataclass(frozen=True)
class OperationResult:
    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str) -> "OperationResult":
        return cls(success=False, error=error, error_code=error_code)


def workflow_operation(name: str) -> Callable:
    """Wrap a service function taking ``db`` first so it returns an OperationResult.

    Workflow errors and store errors roll the session back; anything else propagates.
    """

    def decorator(func: Callable) -> Callable[..., OperationResult]:
        @wraps(func)
        def wrapper(db: Session, *args, **kwargs) -> OperationResult:
            try:
                data = func(db, *args, **kwargs)
            except WorkflowError as exc:
                db.rollback()
                logger.warning("%s_failed error_code=%s message=%s", name, exc.error_code, exc)
                return OperationResult.fail(str(exc), exc.error_code)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("%s_store_error", name)
                return OperationResult.fail("Persistent store error", "store_error")
            return OperationResult.ok(data)

        return wrapper

    return decorator
