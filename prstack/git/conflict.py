"""Conflict reporting for history rewrites.

Contains:
- parse_conflict_output: Extract conflicting paths from merge output
- get_commit_files: Paths touched by a commit
- predict_reorder_overlaps: Commit pairs a reorder swaps that touch the same files
"""

import re
from pathlib import Path
from typing import Optional

from prstack.git.runner import run_git

# Each pattern captures the path git names in one kind of CONFLICT line
_CONFLICT_PATTERNS = [
    re.compile(r"^CONFLICT \([^)]+\): Merge conflict in (.+)$", re.MULTILINE),
    re.compile(r"^CONFLICT \([^)]+\): (?:Add/add|Rename/rename) (.+)$", re.MULTILINE),
    re.compile(r"^CONFLICT \((?:modify|rename)/delete\): (.+?) (?:deleted|renamed to) ", re.MULTILINE),
    re.compile(r"^CONFLICT \([^)]+\): .*? in the way of (.+?) from ", re.MULTILINE),
]


def parse_conflict_output(output: str) -> list[str]:
    """Extract the conflicting file paths from git merge output.

    Args:
        output: Informational messages of merge-tree, rebase or cherry-pick.

    Returns:
        Unique paths in the order git reported them.
    """
    found: list[tuple[int, str]] = []
    for pattern in _CONFLICT_PATTERNS:
        for match in pattern.finditer(output):
            found.append((match.start(), match.group(1).strip()))

    files: list[str] = []
    for _, path in sorted(found):
        if path and path not in files:
            files.append(path)
    return files


def get_commit_files(commit: str, cwd: Optional[Path] = None) -> list[str]:
    output = run_git(
        ["diff-tree", "--no-commit-id", "--name-only", "-r", commit], cwd=cwd
    )
    return [line.strip() for line in output.split("\n") if line.strip()]


def predict_reorder_overlaps(
    current_order: list[str],
    new_order: list[str],
    cwd: Optional[Path] = None,
) -> dict[tuple[str, str], list[str]]:
    """Find the commit pairs a reorder swaps that modify the same files.

    Only pairs whose relative order changes are checked. An overlap does not
    guarantee a conflict, but a conflict during the reorder can only happen
    between overlapping commits.

    Args:
        current_order: Commits as they are now, oldest first.
        new_order: The same commits in their new order.
        cwd: Repository to run git in.

    Returns:
        (earlier, later) in the new order -> shared paths, in new_order order.
    """
    position = {commit: i for i, commit in enumerate(current_order)}
    files: dict[str, list[str]] = {}

    def touched(commit: str) -> list[str]:
        if commit not in files:
            files[commit] = get_commit_files(commit, cwd=cwd)
        return files[commit]

    overlaps: dict[tuple[str, str], list[str]] = {}
    for i, earlier in enumerate(new_order):
        for later in new_order[i + 1:]:
            if earlier not in position or later not in position:
                continue
            if position[earlier] < position[later]:
                continue
            later_files = set(touched(later))
            shared = [path for path in touched(earlier) if path in later_files]
            if shared:
                overlaps[(earlier, later)] = shared
    return overlaps
