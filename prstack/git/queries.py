"""Read-only repository queries.

Contains:
- get_current_branch / is_detached_head / require_branch: HEAD state
- get_full_sha: Resolve a revision
- get_commit_message: Full message of a commit
- get_merge_base: Fork point of HEAD (or a branch) and the trunk
- get_stack_commits: Commits between the merge base and the tip, oldest first
- get_stack_commits_with_trailers: Same, with trailers parsed
"""

from pathlib import Path
from typing import Optional

from prstack.core.models import CommitInfo
from prstack.git.exceptions import DetachedHeadError
from prstack.git.runner import run_git
from prstack.git.trailers import parse_trailers

# Field and record separators for git log output
_FIELD_SEP = "\x00"
_RECORD_SEP = "\x01"


def get_current_branch(cwd: Optional[Path] = None) -> str:
    """Get the current branch name, or 'HEAD' when detached."""
    return run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)


def is_detached_head(cwd: Optional[Path] = None) -> bool:
    return get_current_branch(cwd=cwd) == "HEAD"


def require_branch(cwd: Optional[Path] = None) -> str:
    """Return the current branch name.

    Raises:
        DetachedHeadError: If HEAD is detached.
    """
    branch = get_current_branch(cwd=cwd)
    if branch == "HEAD":
        raise DetachedHeadError(
            "HEAD is detached. Check out a branch before rewriting the stack."
        )
    return branch


def get_full_sha(ref: str, cwd: Optional[Path] = None) -> str:
    return run_git(["rev-parse", ref], cwd=cwd)


def get_commit_message(commit: str, cwd: Optional[Path] = None) -> str:
    """Get the full message of a commit, without trailing newlines."""
    return run_git(["log", "-1", "--format=%B", commit], cwd=cwd)


def get_merge_base(trunk_ref: str, tip: str = "HEAD", cwd: Optional[Path] = None) -> str:
    return run_git(["merge-base", tip, trunk_ref], cwd=cwd)


def _message_body(message: str) -> str:
    """Everything after the subject line, without the separating blank lines."""
    if "\n" not in message:
        return ""
    return message.split("\n", 1)[1].strip("\n")


def _parse_commit_log(output: str) -> list[CommitInfo]:
    """Parse records of hash, subject and full message."""
    commits: list[CommitInfo] = []
    for record in output.split(_RECORD_SEP):
        if not record.strip():
            continue
        fields = record.split(_FIELD_SEP)
        if len(fields) < 3:
            continue
        message = fields[2].strip("\n")
        commits.append(
            CommitInfo(
                hash=fields[0].strip(),
                subject=fields[1].strip(),
                body=_message_body(message),
                message=message,
            )
        )
    return commits


def get_stack_commits(
    trunk_ref: str, cwd: Optional[Path] = None, branch: Optional[str] = None
) -> list[CommitInfo]:
    """Get the stack commits, oldest first.

    Args:
        trunk_ref: Ref the stack is based on (e.g. origin/main).
        cwd: Repository to run git in.
        branch: Branch to read instead of HEAD.

    Returns:
        Commits from the merge base (exclusive) to the tip, without trailers.
    """
    tip = branch or "HEAD"
    base = get_merge_base(trunk_ref, tip=tip, cwd=cwd)
    output = run_git(
        [
            "log",
            "--reverse",
            "--format=%H%x00%s%x00%B%x01",
            f"{base}..{tip}",
        ],
        cwd=cwd,
    )
    return _parse_commit_log(output)


def get_stack_commits_with_trailers(
    trunk_ref: str, cwd: Optional[Path] = None, branch: Optional[str] = None
) -> list[CommitInfo]:
    """Get the stack commits with their trailers parsed."""
    commits = get_stack_commits(trunk_ref, cwd=cwd, branch=branch)
    for commit in commits:
        commit.trailers = parse_trailers(commit.message, cwd=cwd)
    return commits
