"""Stack model and group integrity engine.

This package provides the pure, in-memory part of prstack:
- models: CommitInfo, PRUnit, GroupInfo and the typed result values
- stack: detect_pr_units, parse_stack
- identifier: resolve_identifier, resolve_identifiers, resolve_up_to,
              format_resolution_error, parse_apply_spec
- validation: validate_branch_name, validate_pr_title,
              validate_identifier_format, validate_identifiers
- title: resolve_unit_title, has_stored_title
- ids: generate_commit_id, generate_group_id
"""

# Constants
from prstack.core.constants import (
    COMMIT_ID_TRAILER,
    GROUP_TRAILER,
    GROUP_TRAILERS,
)

# Models
from prstack.core.models import (
    CommitInfo,
    GroupInfo,
    GroupTitles,
    IdentifierAmbiguous,
    IdentifierNotFound,
    IdentifierResolution,
    PRUnit,
    ResolvedUnit,
    ResolvedUpTo,
    SplitGroupError,
    StackOk,
    StackParseResult,
    UpToError,
    UpToResolution,
    ValidationResult,
)

# Stack detection and validation
from prstack.core.stack import (
    detect_pr_units,
    parse_stack,
)

# Identifier resolution
from prstack.core.identifier import (
    format_resolution_error,
    parse_apply_spec,
    resolve_identifier,
    resolve_identifiers,
    resolve_up_to,
)

# Input validation
from prstack.core.validation import (
    validate_branch_name,
    validate_identifier_format,
    validate_identifiers,
    validate_pr_title,
)

# Titles and ids
from prstack.core.title import has_stored_title, resolve_unit_title
from prstack.core.ids import generate_commit_id, generate_group_id


__all__ = [
    # Constants
    "COMMIT_ID_TRAILER",
    "GROUP_TRAILER",
    "GROUP_TRAILERS",
    # Models
    "CommitInfo",
    "GroupInfo",
    "GroupTitles",
    "IdentifierAmbiguous",
    "IdentifierNotFound",
    "IdentifierResolution",
    "PRUnit",
    "ResolvedUnit",
    "ResolvedUpTo",
    "SplitGroupError",
    "StackOk",
    "StackParseResult",
    "UpToError",
    "UpToResolution",
    "ValidationResult",
    # Stack
    "detect_pr_units",
    "parse_stack",
    # Identifier
    "format_resolution_error",
    "parse_apply_spec",
    "resolve_identifier",
    "resolve_identifiers",
    "resolve_up_to",
    # Validation
    "validate_branch_name",
    "validate_identifier_format",
    "validate_identifiers",
    "validate_pr_title",
    # Titles and ids
    "has_stored_title",
    "resolve_unit_title",
    "generate_commit_id",
    "generate_group_id",
]
