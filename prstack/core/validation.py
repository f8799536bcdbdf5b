"""Format checks for user-supplied names and identifiers.

Contains:
- validate_branch_name: Check a branch name against git ref rules
- validate_pr_title: Check a PR title is non-empty and printable
- validate_identifier_format: Check a commit or group identifier's shape
- validate_identifiers: Check a batch of identifiers
"""

import re

from prstack.core.models import ValidationResult

MAX_BRANCH_NAME_LENGTH = 255
MAX_PR_TITLE_LENGTH = 500
MAX_IDENTIFIER_LENGTH = 100

_FORBIDDEN_BRANCH_SEQUENCES = ["~", "^", ":", "?", "*", "[", "\\", "..", "@{"]

_HEX_IDENTIFIER_RE = re.compile(r"[0-9a-f]{4,40}")
_GROUP_IDENTIFIER_RE = re.compile(r"[\w-]+-[0-9a-f]{4,}")


def _is_control(char: str) -> bool:
    code = ord(char)
    return code < 32 or code == 127


def validate_branch_name(name: str) -> ValidationResult:
    """Validate a branch name against git's ref naming rules."""
    if not name:
        return ValidationResult(ok=False, error="Branch name cannot be empty")

    if len(name) > MAX_BRANCH_NAME_LENGTH:
        return ValidationResult(
            ok=False,
            error=f"Branch name too long ({len(name)} chars). Maximum is {MAX_BRANCH_NAME_LENGTH} characters.",
        )

    if " " in name:
        return ValidationResult(ok=False, error="Branch name cannot contain spaces")

    for i, char in enumerate(name):
        if _is_control(char):
            return ValidationResult(
                ok=False,
                error=f"Branch name cannot contain control characters (found at position {i})",
            )

    for sequence in _FORBIDDEN_BRANCH_SEQUENCES:
        if sequence in name:
            return ValidationResult(ok=False, error=f"Branch name cannot contain '{sequence}'")

    if name.startswith("/"):
        return ValidationResult(ok=False, error="Branch name cannot start with '/'")
    if name.endswith("/"):
        return ValidationResult(ok=False, error="Branch name cannot end with '/'")
    if name.endswith(".lock"):
        return ValidationResult(ok=False, error="Branch name cannot end with '.lock'")
    if "//" in name:
        return ValidationResult(ok=False, error="Branch name cannot contain consecutive slashes '//'")

    return ValidationResult(ok=True)


def validate_pr_title(title: str) -> ValidationResult:
    """Validate a PR title. Newlines and carriage returns are allowed."""
    if not title or not title.strip():
        return ValidationResult(
            ok=False,
            error="PR title cannot be empty. Use 'prstack group rename' to set a title.",
        )

    trimmed = title.strip()
    if len(trimmed) > MAX_PR_TITLE_LENGTH:
        return ValidationResult(
            ok=False,
            error=f"PR title too long ({len(trimmed)} chars). Maximum is {MAX_PR_TITLE_LENGTH} characters.",
        )

    for i, char in enumerate(trimmed):
        if char in "\n\r":
            continue
        if _is_control(char):
            return ValidationResult(
                ok=False,
                error=f"PR title cannot contain control characters (found at position {i})",
            )

    return ValidationResult(ok=True)


def validate_identifier_format(identifier: str) -> ValidationResult:
    """Validate an identifier: lowercase hex (4-40 chars) or a name-hexsuffix group id."""
    if not identifier:
        return ValidationResult(ok=False, error="Identifier cannot be empty")

    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        return ValidationResult(
            ok=False,
            error=f"Identifier too long ({len(identifier)} chars). Maximum is {MAX_IDENTIFIER_LENGTH} characters.",
        )

    if _HEX_IDENTIFIER_RE.fullmatch(identifier) or _GROUP_IDENTIFIER_RE.fullmatch(identifier):
        return ValidationResult(ok=True)

    return ValidationResult(
        ok=False,
        error=(
            f"Invalid identifier format: '{identifier}'. "
            "Expected hex string (4-40 chars) or group ID (name-hexsuffix)."
        ),
    )


def validate_identifiers(identifiers: list[str]) -> list[ValidationResult]:
    """Validate a batch of identifiers.

    Returns:
        One failed ValidationResult per invalid identifier, in input order.
    """
    errors = []
    for identifier in identifiers:
        result = validate_identifier_format(identifier)
        if not result.ok:
            errors.append(result)
    return errors
