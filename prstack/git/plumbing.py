"""History rewriting with git plumbing commands.

Nothing here touches the working tree or moves a ref until finalize_rewrite,
so a rewrite that fails halfway leaves the repository as it was.

Contains:
- get_tree / get_parents: Commit structure lookups
- get_author_and_committer_env: Identity and dates of an existing commit
- create_commit: git commit-tree
- get_git_version: Installed git version
- merge_tree: Three-way tree merge against an explicit base
- update_ref / reset_to_commit: Ref and working tree updates
- rewrite_commit_chain: Replace messages, keep every tree
- replay_commits: Re-apply commits in a new order with optional new messages
- finalize_rewrite: Point the branch at the rewritten tip
"""

import functools
import logging
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from prstack.git.conflict import parse_conflict_output
from prstack.git.exceptions import GitError
from prstack.git.queries import get_commit_message
from prstack.git.runner import run_git, try_git

logger = logging.getLogger(__name__)


@dataclass
class MergeTreeResult:
    """Result of a three-way tree merge."""

    ok: bool
    tree: str = ""
    conflict_files: list[str] = field(default_factory=list)
    conflict_info: str = ""


@dataclass
class RewriteResult:
    """Result of rewriting or replaying a chain of commits.

    On conflict, new_tip is empty, conflict_commit names the original commit
    that could not be applied, conflict_files lists the paths git could not
    merge and conflict_info holds its merge output.
    """

    ok: bool
    new_tip: str = ""
    mapping: dict[str, str] = field(default_factory=dict)
    conflict_commit: Optional[str] = None
    conflict_files: list[str] = field(default_factory=list)
    conflict_info: str = ""


def get_tree(commit: str, cwd: Optional[Path] = None) -> str:
    return run_git(["rev-parse", f"{commit}^{{tree}}"], cwd=cwd)


def get_parents(commit: str, cwd: Optional[Path] = None) -> list[str]:
    output = run_git(["rev-list", "--parents", "-n", "1", commit], cwd=cwd)
    return output.split()[1:]


def get_author_and_committer_env(commit: str, cwd: Optional[Path] = None) -> dict[str, str]:
    """Get the author and committer of a commit as GIT_* environment variables."""
    output = run_git(
        ["log", "-1", "--date=raw", "--format=%an%x00%ae%x00%ad%x00%cn%x00%ce%x00%cd", commit],
        cwd=cwd,
    )
    fields = output.split("\x00")
    fields += [""] * (6 - len(fields))
    a_name, a_email, a_date, c_name, c_email, c_date = fields[:6]
    return {
        "GIT_AUTHOR_NAME": a_name,
        "GIT_AUTHOR_EMAIL": a_email,
        "GIT_AUTHOR_DATE": a_date,
        "GIT_COMMITTER_NAME": c_name,
        "GIT_COMMITTER_EMAIL": c_email,
        "GIT_COMMITTER_DATE": c_date,
    }


def create_commit(
    tree: str,
    parents: list[str],
    message: str,
    env: dict[str, str],
    cwd: Optional[Path] = None,
) -> str:
    """Create a commit object with git commit-tree and return its hash."""
    args = ["commit-tree", tree]
    for parent in parents:
        args.extend(["-p", parent])
    return run_git(args, cwd=cwd, input=message.rstrip("\n") + "\n", env=env)


# merge-tree accepts --merge-base from this release on
MERGE_BASE_MIN_VERSION = (2, 40)

_VERSION_RE = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")


@functools.lru_cache(maxsize=None)
def get_git_version() -> tuple[int, int, int]:
    """Return the installed git version as (major, minor, patch)."""
    output = run_git(["version"])
    match = _VERSION_RE.search(output)
    if not match:
        raise GitError(f"Cannot parse git version from: {output}")
    return tuple(int(part or 0) for part in match.groups())


def merge_tree(base: str, ours: str, theirs: str, cwd: Optional[Path] = None) -> MergeTreeResult:
    """Merge two commits against an explicit base without touching the index.

    Uses merge-tree --write-tree where git supports an explicit merge base,
    and a three-way read-tree into a temporary index otherwise.

    Raises:
        GitError: If the merge fails for a reason other than a conflict.
    """
    if get_git_version() < MERGE_BASE_MIN_VERSION:
        return _merge_with_temp_index(base, ours, theirs, cwd)

    result = try_git(
        ["merge-tree", "--write-tree", "--name-only", f"--merge-base={base}", ours, theirs],
        cwd=cwd,
    )
    if result.returncode not in (0, 1):
        raise GitError(f"Git command failed: git merge-tree\n{result.stderr.strip()}")

    lines = result.stdout.split("\n")
    if result.returncode == 0:
        return MergeTreeResult(ok=True, tree=lines[0].strip())

    # After the tree id: conflicted paths, a blank line, then git's messages
    files: list[str] = []
    for line in lines[1:]:
        if not line.strip():
            break
        if line not in files:
            files.append(line)
    info = result.stdout + result.stderr
    return MergeTreeResult(
        ok=False,
        conflict_files=files or parse_conflict_output(info),
        conflict_info=info,
    )


def _merge_mode(base: str, ours: str, theirs: str) -> Optional[str]:
    if ours == theirs or theirs == base:
        return ours
    if ours == base:
        return theirs
    return None


def _merge_with_temp_index(
    base: str, ours: str, theirs: str, cwd: Optional[Path]
) -> MergeTreeResult:
    """Three-way merge in a throwaway index, the way git merge-one-file does it."""
    git_dir = run_git(["rev-parse", "--absolute-git-dir"], cwd=cwd)

    with tempfile.TemporaryDirectory(prefix="prstack-merge-") as scratch:
        tmp = Path(scratch)
        env = {"GIT_DIR": git_dir, "GIT_INDEX_FILE": str(tmp / "index")}
        # Index matches ours before the three-way step, as in a real merge
        run_git(["read-tree", ours], cwd=tmp, env=env)
        run_git(["read-tree", "-i", "-m", "--aggressive", base, ours, theirs], cwd=tmp, env=env)

        stages: dict[str, dict[int, tuple[str, str]]] = {}
        for entry in run_git(["ls-files", "-u", "-z"], cwd=tmp, env=env, strip=False).split("\0"):
            if not entry:
                continue
            meta, path = entry.split("\t", 1)
            mode, sha, stage = meta.split()
            stages.setdefault(path, {})[int(stage)] = (mode, sha)

        conflicts: list[str] = []
        for path, entries in stages.items():
            if set(entries) != {1, 2, 3}:
                conflicts.append(path)
                continue
            modes = [entries[stage][0] for stage in (1, 2, 3)]
            mode = _merge_mode(*modes)
            if mode is None or not all(m.startswith("100") for m in modes):
                conflicts.append(path)
                continue

            base_file, ours_file, theirs_file = (
                run_git(["unpack-file", entries[stage][1]], cwd=tmp, env=env)
                for stage in (1, 2, 3)
            )
            merged = try_git(
                ["merge-file", "-q", ours_file, base_file, theirs_file], cwd=tmp, env=env
            )
            if merged.returncode != 0:
                conflicts.append(path)
                continue
            blob = run_git(["hash-object", "-w", "--no-filters", ours_file], cwd=tmp, env=env)
            run_git(["update-index", "--add", "--cacheinfo", mode, blob, path], cwd=tmp, env=env)

        if conflicts:
            logger.debug("Temporary-index merge has %d conflicting path(s)", len(conflicts))
            return MergeTreeResult(
                ok=False,
                conflict_files=conflicts,
                conflict_info="".join(f"CONFLICT (content): Merge conflict in {p}\n" for p in conflicts),
            )
        return MergeTreeResult(ok=True, tree=run_git(["write-tree"], cwd=tmp, env=env))


def update_ref(
    ref: str,
    new_sha: str,
    old_sha: Optional[str] = None,
    cwd: Optional[Path] = None,
    reason: str = "prstack: rewrite stack",
) -> None:
    """Move a ref, failing if it no longer points at old_sha."""
    args = ["update-ref", "-m", reason, ref, new_sha]
    if old_sha:
        args.append(old_sha)
    run_git(args, cwd=cwd)


def reset_to_commit(commit: str, cwd: Optional[Path] = None) -> None:
    run_git(["reset", "--hard", "--quiet", commit], cwd=cwd)


def _first_parent(commit: str, cwd: Optional[Path]) -> str:
    parents = get_parents(commit, cwd=cwd)
    if not parents:
        raise GitError(f"Commit {commit[:8]} has no parent and cannot be rewritten")
    return parents[0]


def rewrite_commit_chain(
    commits: list[str],
    rewrites: dict[str, str],
    cwd: Optional[Path] = None,
) -> RewriteResult:
    """Recreate a linear chain with new messages, keeping every tree as is.

    Args:
        commits: Chain to rewrite, oldest first.
        rewrites: Original hash -> new message. Other commits keep their message.
        cwd: Repository to run git in.

    Returns:
        RewriteResult with the new tip and old -> new hash mapping. Message-only
        rewrites cannot conflict, so ok is always True.

    Raises:
        GitError: If commits is empty or a git command fails.
    """
    if not commits:
        raise GitError("rewrite_commit_chain: no commits were rewritten")

    mapping: dict[str, str] = {}
    previous: Optional[str] = None

    for commit in commits:
        tree = get_tree(commit, cwd=cwd)
        env = get_author_and_committer_env(commit, cwd=cwd)
        message = rewrites.get(commit)
        if message is None:
            message = get_commit_message(commit, cwd=cwd)
        parent = previous or _first_parent(commit, cwd)

        new_sha = create_commit(tree, [parent], message, env, cwd=cwd)
        mapping[commit] = new_sha
        previous = new_sha

    logger.debug("Rewrote %d commit(s), new tip %s", len(commits), previous)
    return RewriteResult(ok=True, new_tip=previous, mapping=mapping)


def replay_commits(
    onto: str,
    commits: list[str],
    rewrites: Optional[dict[str, str]] = None,
    cwd: Optional[Path] = None,
) -> RewriteResult:
    """Re-apply commits on top of onto in the given order.

    Each commit's change (its diff against its original parent) is merged
    onto the new tip. A commit whose original parent is already the new tip
    keeps its tree unchanged.

    Args:
        onto: Commit to build on.
        commits: Commits to apply, in their new order.
        rewrites: Original hash -> new message.
        cwd: Repository to run git in.

    Returns:
        RewriteResult. On conflict no ref has been moved and the created
        objects are unreachable.
    """
    rewrites = rewrites or {}
    mapping: dict[str, str] = {}
    current_tip = onto

    for commit in commits:
        original_parent = _first_parent(commit, cwd)

        if original_parent == current_tip:
            tree = get_tree(commit, cwd=cwd)
        else:
            merged = merge_tree(original_parent, current_tip, commit, cwd=cwd)
            if not merged.ok:
                logger.debug("Replay of %s conflicts", commit[:8])
                return RewriteResult(
                    ok=False,
                    mapping=mapping,
                    conflict_commit=commit,
                    conflict_files=merged.conflict_files,
                    conflict_info=merged.conflict_info,
                )
            tree = merged.tree

        env = get_author_and_committer_env(commit, cwd=cwd)
        message = rewrites.get(commit)
        if message is None:
            message = get_commit_message(commit, cwd=cwd)

        new_sha = create_commit(tree, [current_tip], message, env, cwd=cwd)
        mapping[commit] = new_sha
        current_tip = new_sha

    logger.debug("Replayed %d commit(s) onto %s, new tip %s", len(commits), onto[:8], current_tip)
    return RewriteResult(ok=True, new_tip=current_tip, mapping=mapping)


def finalize_rewrite(
    branch: str,
    old_tip: str,
    new_tip: str,
    cwd: Optional[Path] = None,
    reason: str = "prstack: rewrite stack",
) -> None:
    """Point a checked-out branch at the rewritten tip.

    The working tree is reset only when the final tree differs.
    """
    old_tree = get_tree(old_tip, cwd=cwd)
    new_tree = get_tree(new_tip, cwd=cwd)

    update_ref(f"refs/heads/{branch}", new_tip, old_tip, cwd=cwd, reason=reason)

    if old_tree != new_tree:
        reset_to_commit(new_tip, cwd=cwd)
