"""Data models for the group repair engine.

Contains:
- RepairResult: Outcome of a history-rewriting repair operation
- GroupSpecError: Malformed or unresolvable group spec
- GroupDefinition: One group of a group spec
- GroupSpec: Declarative reorder plus group assignment
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, StrictStr


@dataclass
class RepairResult:
    """Outcome of a repair operation.

    conflict_file is set when a reorder stopped on a content conflict. The
    repository is left as it was in that case and the caller must not retry.
    """

    success: bool
    error: Optional[str] = None
    conflict_file: Optional[str] = None


class GroupSpecError(ValueError):
    """Group spec rejected before any history was touched."""

    pass


class GroupDefinition(BaseModel):
    """A named group and the commits it should contain."""

    commits: list[StrictStr]
    name: StrictStr


class GroupSpec(BaseModel):
    """Declarative group spec.

    order, when given, is the new commit order (oldest first) and must list
    every commit of the stack once. Every string is a commit or unit
    identifier.
    """

    order: Optional[list[StrictStr]] = None
    groups: list[GroupDefinition]
