"""Data models for the stack engine.

Contains:
- CommitInfo: A commit in the stack with its parsed trailers
- PRUnit: A single commit or contiguous group, reviewed as one change
- GroupInfo: Summary of a group carried by validation failures
- StackOk / SplitGroupError: Outcomes of parse_stack
- ResolvedUnit / IdentifierNotFound / IdentifierAmbiguous: Outcomes of resolve_identifier
- ResolvedUpTo / UpToError: Outcomes of resolve_up_to
- ValidationResult: Outcome of input format checks
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

# Group id -> display title, stored outside the commit history
GroupTitles = dict[str, str]


@dataclass
class CommitInfo:
    """A commit in the stack, oldest first.

    body is the message after the subject line. message is the full message
    as git stores it, which is what rewrites start from.
    """

    hash: str
    subject: str
    body: str = ""
    trailers: dict[str, str] = field(default_factory=dict)
    message: str = ""


@dataclass
class PRUnit:
    """A reviewable unit: one commit, or a contiguous run sharing a group id.

    commits, commit_ids (when every member has an id) and subjects are
    co-indexed, oldest first. title is None when nothing was stored, which is
    not the same as an explicit empty title.
    """

    type: Literal["single", "group"]
    id: str
    title: Optional[str]
    commit_ids: list[str] = field(default_factory=list)
    commits: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)


@dataclass
class GroupInfo:
    """The offending group of a validation failure."""

    id: str
    title: str
    commits: list[str]


@dataclass
class StackOk:
    """Stack passed validation."""

    units: list[PRUnit]
    ok: bool = field(default=True, init=False)


@dataclass
class SplitGroupError:
    """A group's members are not contiguous in the stack."""

    group: GroupInfo
    interrupting_commits: list[str]
    ok: bool = field(default=False, init=False)
    error: str = field(default="split-group", init=False)


StackParseResult = Union[StackOk, SplitGroupError]


@dataclass
class ResolvedUnit:
    unit: PRUnit
    ok: bool = field(default=True, init=False)


@dataclass
class IdentifierNotFound:
    identifier: str
    ok: bool = field(default=False, init=False)
    error: str = field(default="not-found", init=False)


@dataclass
class IdentifierAmbiguous:
    identifier: str
    matches: list[str]
    ok: bool = field(default=False, init=False)
    error: str = field(default="ambiguous", init=False)


IdentifierResolution = Union[ResolvedUnit, IdentifierNotFound, IdentifierAmbiguous]


@dataclass
class ResolvedUpTo:
    """Unit ids from the bottom of the stack through the target, in stack order."""

    unit_ids: list[str]
    ok: bool = field(default=True, init=False)


@dataclass
class UpToError:
    error: Union[IdentifierNotFound, IdentifierAmbiguous]
    ok: bool = field(default=False, init=False)


UpToResolution = Union[ResolvedUpTo, UpToError]


@dataclass
class ValidationResult:
    ok: bool
    error: Optional[str] = None
