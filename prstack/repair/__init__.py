"""Group repair engine for prstack.

This package rewrites stack history to restore group invariants:
- models: RepairResult, GroupSpec, GroupDefinition, GroupSpecError
- spec: parse_group_spec
- engine: add_group_trailers, remove_group_trailers, extend_group,
          merge_split_group, dissolve_group, remove_all_group_trailers,
          apply_group_spec, inject_missing_ids
"""

# Models
from prstack.repair.models import (
    GroupDefinition,
    GroupSpec,
    GroupSpecError,
    RepairResult,
)

# Spec parsing
from prstack.repair.spec import parse_group_spec

# Repair operations
from prstack.repair.engine import (
    add_group_trailers,
    apply_group_spec,
    dissolve_group,
    extend_group,
    inject_missing_ids,
    merge_split_group,
    remove_all_group_trailers,
    remove_group_trailers,
)


__all__ = [
    # Models
    "GroupDefinition",
    "GroupSpec",
    "GroupSpecError",
    "RepairResult",
    # Spec
    "parse_group_spec",
    # Operations
    "add_group_trailers",
    "apply_group_spec",
    "dissolve_group",
    "extend_group",
    "inject_missing_ids",
    "merge_split_group",
    "remove_all_group_trailers",
    "remove_group_trailers",
]
