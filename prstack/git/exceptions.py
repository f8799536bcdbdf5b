"""Git-related exception classes.

Contains all exception classes for Git operations:
- GitError: Base exception for git-related errors
- DetachedHeadError: Raised when an operation needs a checked-out branch
- DirtyWorkingTreeError: Raised when uncommitted changes block a rewrite
"""


class GitError(Exception):
    """Custom exception for git-related errors."""

    pass


class DetachedHeadError(GitError):
    """Raised when HEAD is detached and a branch is required."""

    pass


class DirtyWorkingTreeError(GitError):
    """Raised when there are uncommitted changes in the working tree."""

    pass
