"""Stack detection and validation.

Contains:
- detect_pr_units: Fold a commit sequence into PR units
- parse_stack: Check group contiguity, then detect PR units
"""

from typing import Optional

from prstack.core.constants import COMMIT_ID_TRAILER, GROUP_TRAILER, SHORT_HASH_LENGTH
from prstack.core.models import (
    CommitInfo,
    GroupInfo,
    GroupTitles,
    PRUnit,
    SplitGroupError,
    StackOk,
    StackParseResult,
)


def detect_pr_units(
    commits: list[CommitInfo], titles: Optional[GroupTitles] = None
) -> list[PRUnit]:
    """Detect PR units from a list of commits.

    Consecutive commits sharing a group trailer form one group unit; every
    other commit is a single. A commit without an id falls back to its short
    hash as unit id, which is for display only and is never written back.

    Args:
        commits: Stack commits, oldest first.
        titles: Stored group titles keyed by group id.

    Returns:
        PR units, oldest first.
    """
    titles = titles or {}
    units: list[PRUnit] = []
    current_group: Optional[PRUnit] = None

    for commit in commits:
        commit_id = commit.trailers.get(COMMIT_ID_TRAILER)
        group_id = commit.trailers.get(GROUP_TRAILER)

        if group_id:
            if current_group is not None and current_group.id == group_id:
                if commit_id:
                    current_group.commit_ids.append(commit_id)
                current_group.commits.append(commit.hash)
                current_group.subjects.append(commit.subject)
                continue

            if current_group is not None:
                units.append(current_group)
            current_group = PRUnit(
                type="group",
                id=group_id,
                title=titles.get(group_id),
                commit_ids=[commit_id] if commit_id else [],
                commits=[commit.hash],
                subjects=[commit.subject],
            )
        else:
            if current_group is not None:
                units.append(current_group)
                current_group = None
            units.append(
                PRUnit(
                    type="single",
                    id=commit_id or commit.hash[:SHORT_HASH_LENGTH],
                    title=commit.subject,
                    commit_ids=[commit_id] if commit_id else [],
                    commits=[commit.hash],
                    subjects=[commit.subject],
                )
            )

    if current_group is not None:
        units.append(current_group)
    return units


def parse_stack(
    commits: list[CommitInfo], titles: Optional[GroupTitles] = None
) -> StackParseResult:
    """Validate group contiguity and detect PR units.

    This runs before detection because detection alone would read a group id
    reused after an interruption as two separate groups.

    Args:
        commits: Stack commits, oldest first.
        titles: Stored group titles keyed by group id.

    Returns:
        StackOk with the units, or SplitGroupError for the first group whose
        members are not adjacent.
    """
    titles = titles or {}
    positions: dict[str, list[int]] = {}

    for index, commit in enumerate(commits):
        group_id = commit.trailers.get(GROUP_TRAILER)
        if group_id:
            positions.setdefault(group_id, []).append(index)

    for group_id, group_positions in positions.items():
        for prev, curr in zip(group_positions, group_positions[1:]):
            if curr == prev + 1:
                continue

            first = commits[group_positions[0]]
            title = titles.get(group_id)
            if title is None:
                title = first.subject or "Unknown"

            return SplitGroupError(
                group=GroupInfo(
                    id=group_id,
                    title=title,
                    commits=[commits[i].hash for i in group_positions],
                ),
                interrupting_commits=[c.hash for c in commits[prev + 1:curr]],
            )

    return StackOk(units=detect_pr_units(commits, titles))
