import re
from typing import Any

TEMPLATE_VAR_PATTERN = re.compile(r"{{\s*([a-zA-Z0-9_.-]+)\s*}}")
TEST_PREFIX = "[TEST] "


def _resolve_path(payload: dict[str, Any], path: str) -> str:
    current: Any = payload
    for token in path.split("."):
        if isinstance(current, dict) and token in current:
            current = current[token]
        else:
            return ""
    if current is None:
        return ""
    if isinstance(current, bool):
        return "true" if current else "false"
    return str(current)


def substitute_parameters(template: str, parameters: dict[str, Any], *, is_test: bool = False) -> str:
    def _replace(match: re.Match[str]) -> str:
        return _resolve_path(parameters, match.group(1).strip())

    rendered = TEMPLATE_VAR_PATTERN.sub(_replace, template)
    return f"{TEST_PREFIX}{rendered}" if is_test else rendered


def _substitute_leaves(value: Any, parameters: dict[str, Any]) -> Any:
    if isinstance(value, str):
        return substitute_parameters(value, parameters)
    if isinstance(value, list):
        return [_substitute_leaves(item, parameters) for item in value]
    if isinstance(value, dict):
        return {key: _substitute_leaves(item, parameters) for key, item in value.items()}
    return value


def substitute_parameters_in_json(template: Any, parameters: dict[str, Any], *, is_test: bool = False) -> Any:
    # The test prefix only marks a top-level string; nested block text stays untouched.
    if isinstance(template, str):
        return substitute_parameters(template, parameters, is_test=is_test)
    return _substitute_leaves(template, parameters)


def extract_parameter_names(template: str) -> list[str]:
    return list(dict.fromkeys(match.group(1).strip() for match in TEMPLATE_VAR_PATTERN.finditer(template)))
