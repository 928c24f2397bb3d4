import importlib
import logging
import pkgutil
from types import ModuleType
from typing import Any, Iterable

from app.integrations.action_executors.base_executor import (
    ActionContext,
    ActionExecutionResult,
    ActionResolutionError,
    BaseActionExecutor,
)

logger = logging.getLogger(__name__)

_DISCOVERED = False
_EXECUTOR_REGISTRY: dict[str, type[BaseActionExecutor]] = {}
_SKIP_MODULES = {"base_executor", "factory"}


class MissingActionExecutor(BaseActionExecutor):
    action_type = "missing"
    is_fallback = True

    def __init__(self, requested_action_type: str) -> None:
        self.requested_action_type = requested_action_type

    def execute(self, configuration: dict[str, Any], context: ActionContext) -> ActionExecutionResult:
        return ActionExecutionResult.failed(f"Unknown action type: {self.requested_action_type}")


def _iter_subclasses(root: type[BaseActionExecutor]) -> Iterable[type[BaseActionExecutor]]:
    for subclass in root.__subclasses__():
        yield subclass
        yield from _iter_subclasses(subclass)


def _discover_executor_modules() -> None:
    package = importlib.import_module("app.integrations.action_executors")
    if not isinstance(package, ModuleType) or not hasattr(package, "__path__"):
        return

    for module_info in pkgutil.iter_modules(package.__path__, prefix="app.integrations.action_executors."):
        module_name = module_info.name.rsplit(".", 1)[-1]
        if module_name in _SKIP_MODULES:
            continue
        try:
            importlib.import_module(module_info.name)
        except Exception as exc:
            logger.warning("action_executor_module_skip module=%s reason=%s", module_info.name, exc)


def _load_registry() -> dict[str, type[BaseActionExecutor]]:
    global _DISCOVERED
    if _DISCOVERED and _EXECUTOR_REGISTRY:
        return _EXECUTOR_REGISTRY

    _discover_executor_modules()
    discovered: dict[str, type[BaseActionExecutor]] = {}
    for executor_cls in _iter_subclasses(BaseActionExecutor):
        if getattr(executor_cls, "is_fallback", False):
            continue
        action_type = (getattr(executor_cls, "action_type", "") or "").strip().lower()
        if not action_type:
            continue
        discovered[action_type] = executor_cls

    _EXECUTOR_REGISTRY.clear()
    _EXECUTOR_REGISTRY.update(discovered)
    _DISCOVERED = True
    logger.info(
        "action_executor_registry_loaded total=%s types=%s",
        len(_EXECUTOR_REGISTRY),
        ",".join(sorted(_EXECUTOR_REGISTRY.keys())),
    )
    return _EXECUTOR_REGISTRY


def list_registered_action_types() -> list[str]:
    return sorted(_load_registry().keys())


def get_action_executor(action_type: str, *, strict: bool = False) -> BaseActionExecutor:
    normalized_type = (action_type or "").strip().lower()
    registry = _load_registry()
    executor_cls = registry.get(normalized_type)
    if executor_cls is None:
        logger.error(
            "action_executor_resolution_failed action_type=%s available_types=%s",
            normalized_type,
            ",".join(sorted(registry.keys())),
        )
        if strict:
            raise ActionResolutionError(f"Unsupported action type: {normalized_type}")
        return MissingActionExecutor(normalized_type)
    return executor_cls()
