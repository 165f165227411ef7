"""
Variable utilities shared by the renderer and the navigation layer:
condition evaluation, {placeholder} templates and conditional destinations.

All functions are pure. They never raise on malformed documents; a broken
condition shows the element, a missing variable renders as an empty string.
"""
from collections.abc import Mapping
from typing import Any
import json
import logging
import re

logger = logging.getLogger(__name__)

TEMPLATE_TOKEN = re.compile(r"\{(\w+(?:\.\w+)*)\}")

NEXT_SCREEN = "next"


def _is_number(value: Any) -> bool:
    # bool is an int subclass, but true/false in a document is not a number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def _contains(container: list, value: Any) -> bool:
    return any(_strict_equals(item, value) for item in container)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and len(value) == 0)


def evaluate_comparison(variable_name: str, operator: str, condition_value: Any, variables: Mapping[str, Any]) -> bool:
    """Evaluate a single {variable, operator, value} leaf."""
    actual = variables.get(variable_name)

    if operator == "equals":
        return _strict_equals(actual, condition_value)
    if operator == "not_equals":
        return not _strict_equals(actual, condition_value)
    if operator == "greater_than":
        return _is_number(actual) and _is_number(condition_value) and actual > condition_value
    if operator == "less_than":
        return _is_number(actual) and _is_number(condition_value) and actual < condition_value
    if operator == "contains":
        if isinstance(actual, str):
            return isinstance(condition_value, str) and condition_value in actual
        if isinstance(actual, list):
            return _contains(actual, condition_value)
        return False
    if operator == "in":
        return isinstance(condition_value, list) and _contains(condition_value, actual)
    if operator == "is_empty":
        return _is_empty(actual)
    if operator == "is_not_empty":
        return not _is_empty(actual)

    logger.debug("unknown condition operator %r on variable %s", operator, variable_name)
    return False


def evaluate_condition(condition: Mapping[str, Any] | None, variables: Mapping[str, Any]) -> bool:
    """
    Recursively evaluate a condition tree against the variable store.

    Supports a single comparison, ``all`` (AND), ``any`` (OR) and ``not``.
    Anything without a valid structure evaluates to True so the element shows.
    """
    if not condition or not isinstance(condition, Mapping):
        return True

    if isinstance(condition.get("all"), list):
        return all(evaluate_condition(c, variables) for c in condition["all"])

    if isinstance(condition.get("any"), list):
        return any(evaluate_condition(c, variables) for c in condition["any"])

    if condition.get("not") is not None:
        return not evaluate_condition(condition["not"], variables)

    if isinstance(condition.get("variable"), str) and condition["variable"] and condition.get("operator"):
        return evaluate_comparison(condition["variable"], condition["operator"], condition.get("value"), variables)

    return True


def lookup_variable(name: str, variables: Mapping[str, Any]) -> Any:
    """Exact key first ("user.name"), then a nested walk (variables["user"]["name"])."""
    if name in variables:
        return variables[name]
    if "." not in name:
        return None

    first, *rest = name.split(".")
    value = variables.get(first)
    for part in rest:
        if value is None:
            break
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            value = None
    return value


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def resolve_template(template: str, variables: Mapping[str, Any]) -> str:
    """Resolve {variable} and {variable.path} placeholders. Unknown variables become ''."""
    if not template:
        return template
    if not isinstance(template, str):
        return stringify(template)
    if "{" not in template:
        return template

    return TEMPLATE_TOKEN.sub(lambda match: stringify(lookup_variable(match.group(1), variables)), template)


def resolve_destination(destination: Any, variables: Mapping[str, Any]) -> str | None:
    """
    Resolve a navigation target to a concrete screen id / sentinel / URL.

    ``destination`` is a plain string, a routes table
    ``{"routes": [{"condition", "destination"}], "default"}`` or an
    if/then/else ``{"if", "then", "else"}``. Branches may nest; malformed parts
    resolve to None instead of raising.
    """
    if not destination:
        return None

    if isinstance(destination, str):
        return destination

    if not isinstance(destination, Mapping):
        logger.warning("unsupported destination type %s", type(destination).__name__)
        return None

    if "routes" in destination:
        routes = destination.get("routes")
        for route in routes if isinstance(routes, list) else []:
            if not isinstance(route, Mapping):
                logger.warning("skipping malformed route %r", route)
                continue
            if evaluate_condition(route.get("condition"), variables):
                return resolve_destination(route.get("destination"), variables)
        return resolve_destination(destination.get("default"), variables)

    if evaluate_condition(destination.get("if"), variables):
        return resolve_destination(destination.get("then"), variables)

    otherwise = destination.get("else")
    if otherwise:
        return resolve_destination(otherwise, variables)

    return NEXT_SCREEN
