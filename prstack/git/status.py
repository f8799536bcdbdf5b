"""Git working tree status utilities.

Contains:
- WorkingTreeStatus: Summary of porcelain status
- get_working_tree_status: Read the working tree state
- require_clean_working_tree: Refuse to continue with uncommitted changes
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from prstack.git.exceptions import DirtyWorkingTreeError
from prstack.git.runner import run_git


@dataclass
class WorkingTreeStatus:
    """Summary of `git status --porcelain`."""

    is_dirty: bool
    has_unstaged_changes: bool
    has_staged_changes: bool
    has_untracked_files: bool


def get_working_tree_status(cwd: Optional[Path] = None) -> WorkingTreeStatus:
    """Get the working tree state.

    The porcelain format uses two columns:
    - First column: staged status (index)
    - Second column: worktree status
    """
    output = run_git(["status", "--porcelain=v1"], cwd=cwd, strip=False)
    has_unstaged = False
    has_staged = False
    has_untracked = False

    lines = [line for line in output.split("\n") if line]
    for line in lines:
        if line.startswith("??"):
            has_untracked = True
            continue
        index, worktree = line[0], line[1]
        if index not in (" ", "?"):
            has_staged = True
        if worktree not in (" ", "?"):
            has_unstaged = True

    return WorkingTreeStatus(
        is_dirty=bool(lines),
        has_unstaged_changes=has_unstaged,
        has_staged_changes=has_staged,
        has_untracked_files=has_untracked,
    )


def require_clean_working_tree(cwd: Optional[Path] = None) -> None:
    """Raise if there are staged or unstaged changes. Untracked files are fine.

    Raises:
        DirtyWorkingTreeError: If the working tree has uncommitted changes.
    """
    status = get_working_tree_status(cwd=cwd)
    if status.has_staged_changes or status.has_unstaged_changes:
        raise DirtyWorkingTreeError(
            "Cannot proceed: there are uncommitted changes in the working tree"
        )
