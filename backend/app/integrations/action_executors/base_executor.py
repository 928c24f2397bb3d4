from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar
from uuid import UUID


class ActionResolutionError(RuntimeError):
    pass


class ActionConfigurationError(ValueError):
    error_code: str = "invalid_action_configuration"


@dataclass(frozen=True)
class ActionContext:
    trigger_name: str
    parameters: dict[str, Any]
    is_test: bool = False
    executed_by: UUID | None = None


@dataclass(frozen=True)
class ActionExecutionResult:
    success: bool
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str) -> "ActionExecutionResult":
        return cls(success=False, error=error)


class BaseActionExecutor(ABC):
    action_type: ClassVar[str] = ""
    is_fallback: ClassVar[bool] = False

    def validate_configuration(self, configuration: dict[str, Any]) -> None:
        return None

    @abstractmethod
    def execute(self, configuration: dict[str, Any], context: ActionContext) -> ActionExecutionResult:
        raise NotImplementedError
