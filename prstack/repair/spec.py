"""Group spec parsing.

Contains:
- parse_group_spec: Parse and validate a JSON group spec
"""

import json

from pydantic import ValidationError

from prstack.repair.models import GroupSpec, GroupSpecError


def _format_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid group spec at '{location}': {first['msg']}"


def parse_group_spec(json_text: str) -> GroupSpec:
    """Parse a group spec document.

    Expected shape:
        {"order": ["<id>", ...], "groups": [{"commits": ["<id>", ...], "name": "..."}]}

    Args:
        json_text: JSON document as passed on the command line.

    Returns:
        The validated GroupSpec. Identifiers are not resolved here.

    Raises:
        GroupSpecError: If the JSON is malformed or has the wrong shape.
    """
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise GroupSpecError(f"Invalid JSON in group spec: {e}")

    if not isinstance(data, dict):
        raise GroupSpecError("Group spec must be a JSON object")
    if not isinstance(data.get("groups"), list):
        raise GroupSpecError("groups must be an array")
    if "order" in data and data["order"] is not None and not isinstance(data["order"], list):
        raise GroupSpecError("order must be an array")

    try:
        return GroupSpec.model_validate(data)
    except ValidationError as e:
        raise GroupSpecError(_format_validation_error(e))
