"""Shared FastAPI helpers used across routers."""

import json
from typing import Any

from labrinth.errors import FieldIssue, FieldValidationError


def parse_json_param(name: str, raw: str | None, expected: type) -> Any:
    """Decode a JSON-encoded query parameter, raising 400 on malformed input."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FieldValidationError([FieldIssue(name, "is not valid JSON")]) from e
    if not isinstance(value, expected):
        raise FieldValidationError(
            [FieldIssue(name, f"must be a JSON {expected.__name__}")]
        )
    return value


def parse_field_filters(raw: str | None) -> dict[str, list[Any]]:
    """``{"field": value | [values]}`` into ``field -> accepted values``."""
    filters = parse_json_param("fields", raw, dict) or {}
    return {name: v if isinstance(v, list) else [v] for name, v in filters.items()}


def parse_json_list(
    name: str, raw: str | None, item_type: type, item_name: str
) -> list[Any] | None:
    """A JSON array query parameter whose elements must all be ``item_type``."""
    items = parse_json_param(name, raw, list)
    if items is None:
        return None
    if any(not isinstance(i, item_type) or isinstance(i, bool) for i in items):
        raise FieldValidationError([FieldIssue(name, f"must be a JSON array of {item_name}")])
    return items
