"""Identifier resolution against the PR units of a stack.

Contains:
- resolve_identifier: Map one user-typed identifier to a unit
- resolve_identifiers: Resolve a batch, collecting every failure
- resolve_up_to: Select a unit and everything below it
- format_resolution_error: Render a failed resolution for the user
- parse_apply_spec: Parse a JSON array of identifiers
"""

import json

from prstack.core.constants import SHORT_HASH_LENGTH
from prstack.core.models import (
    CommitInfo,
    IdentifierAmbiguous,
    IdentifierNotFound,
    IdentifierResolution,
    PRUnit,
    ResolvedUnit,
    ResolvedUpTo,
    UpToError,
    UpToResolution,
)
from prstack.core.validation import validate_identifiers


def resolve_identifier(
    identifier: str, units: list[PRUnit], commits: list[CommitInfo]
) -> IdentifierResolution:
    """Resolve an identifier to exactly one PR unit.

    Resolution order, first match wins:
    1. Exact unit id
    2. Unique unit id prefix (several prefixes is ambiguous)
    3. Unique commit hash prefix, mapped to the unit containing that commit

    Args:
        identifier: Unit id, group id or commit hash, full or partial.
        units: PR units of the stack.
        commits: Raw stack commits.

    Returns:
        ResolvedUnit, IdentifierNotFound or IdentifierAmbiguous.
    """
    for unit in units:
        if unit.id == identifier:
            return ResolvedUnit(unit=unit)

    prefix_matches = [unit for unit in units if unit.id.startswith(identifier)]
    if len(prefix_matches) == 1:
        return ResolvedUnit(unit=prefix_matches[0])
    if len(prefix_matches) > 1:
        return IdentifierAmbiguous(
            identifier=identifier, matches=[unit.id for unit in prefix_matches]
        )

    hash_matches = [commit for commit in commits if commit.hash.startswith(identifier)]
    if not hash_matches:
        return IdentifierNotFound(identifier=identifier)
    if len(hash_matches) > 1:
        return IdentifierAmbiguous(
            identifier=identifier,
            matches=[commit.hash[:SHORT_HASH_LENGTH] for commit in hash_matches],
        )

    matched_hash = hash_matches[0].hash
    for unit in units:
        if matched_hash in unit.commits:
            return ResolvedUnit(unit=unit)
    return IdentifierNotFound(identifier=identifier)


def resolve_identifiers(
    identifiers: list[str], units: list[PRUnit], commits: list[CommitInfo]
) -> tuple[set[str], list[IdentifierResolution]]:
    """Resolve several identifiers without stopping at the first failure.

    Returns:
        Tuple of (resolved unit ids, failed resolutions in input order).
    """
    unit_ids: set[str] = set()
    errors: list[IdentifierResolution] = []

    for identifier in identifiers:
        result = resolve_identifier(identifier, units, commits)
        if result.ok:
            unit_ids.add(result.unit.id)
        else:
            errors.append(result)

    return unit_ids, errors


def resolve_up_to(
    identifier: str, units: list[PRUnit], commits: list[CommitInfo]
) -> UpToResolution:
    """Resolve the unit ids from the bottom of the stack through the target."""
    result = resolve_identifier(identifier, units, commits)
    if not result.ok:
        return UpToError(error=result)

    unit_ids: list[str] = []
    for unit in units:
        unit_ids.append(unit.id)
        if unit.id == result.unit.id:
            break
    return ResolvedUpTo(unit_ids=unit_ids)


def format_resolution_error(error: IdentifierResolution) -> str:
    """Format a failed resolution as a user-facing message."""
    if error.ok:
        return ""
    if error.error == "not-found":
        return f"Error: No commit or group matching '{error.identifier}' found in stack"
    return (
        f"Error: '{error.identifier}' matches multiple commits. "
        "Please provide more characters to disambiguate.\n"
        f"  Matches: {', '.join(error.matches)}"
    )


def parse_apply_spec(text: str) -> list[str]:
    """Parse a JSON array of identifiers, as passed to --apply.

    Raises:
        ValueError: If the JSON is malformed, is not an array of strings, or
            contains an identifier with an invalid format.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        raise ValueError("Invalid --apply format. Expected JSON array of identifiers.")

    if not isinstance(parsed, list):
        raise ValueError("Invalid --apply format. Expected JSON array of identifiers.")

    for item in parsed:
        if not isinstance(item, str):
            raise ValueError("Invalid --apply format. All items must be strings.")

    errors = validate_identifiers(parsed)
    if errors:
        raise ValueError(errors[0].error)

    return parsed
