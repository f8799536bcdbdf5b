"""Group repair engine.

Every operation works on the stack between the trunk merge base and HEAD. It
checks that HEAD is on a branch and that the working tree is clean, builds the
new history with plumbing commands and moves the branch only once the whole
chain exists. A failure before that point leaves the repository untouched.

Contains:
- add_group_trailers / remove_group_trailers: Tag or untag one commit
- extend_group: Grow a group up to a given commit
- merge_split_group: Reorder a split group back into one run
- dissolve_group: Turn a group's members back into singles
- remove_all_group_trailers: Strip every group trailer in the stack
- apply_group_spec: Reorder and regroup in one pass
- inject_missing_ids: Give every commit a commit id
"""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from prstack.config import PrstackConfig, load_config
from prstack.core.constants import (
    COMMIT_ID_TRAILER,
    GROUP_TRAILER,
    GROUP_TRAILERS,
    LEGACY_GROUP_END_TRAILER,
    LEGACY_GROUP_START_TRAILER,
    SHORT_HASH_LENGTH,
)
from prstack.core.identifier import resolve_identifier
from prstack.core.ids import generate_commit_id, generate_group_id
from prstack.core.models import CommitInfo, PRUnit
from prstack.core.stack import detect_pr_units
from prstack.git.conflict import parse_conflict_output, predict_reorder_overlaps
from prstack.git.exceptions import GitError
from prstack.git.group_titles import (
    delete_group_titles,
    read_group_titles,
    set_group_title,
    write_group_titles,
)
from prstack.git.plumbing import finalize_rewrite, replay_commits, rewrite_commit_chain
from prstack.git.queries import (
    get_full_sha,
    get_merge_base,
    get_stack_commits_with_trailers,
    require_branch,
)
from prstack.git.status import require_clean_working_tree
from prstack.git.trailers import add_trailers, remove_trailers
from prstack.repair.models import GroupSpec, GroupSpecError, RepairResult

logger = logging.getLogger(__name__)

# Trailers whose value is a group id (the legacy title trailer holds a title)
_GROUP_ID_TRAILERS = (GROUP_TRAILER, LEGACY_GROUP_START_TRAILER, LEGACY_GROUP_END_TRAILER)


@dataclass
class _Stack:
    """Snapshot of the stack an operation works on."""

    branch: str
    base: str
    head: str
    commits: list[CommitInfo]

    @property
    def hashes(self) -> list[str]:
        return [commit.hash for commit in self.commits]

    @property
    def tip(self) -> str:
        return self.head


def _repair_operation(func):
    """Report git failures as a failed RepairResult instead of raising."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> RepairResult:
        try:
            return func(*args, **kwargs)
        except GitError as e:
            logger.debug("%s failed: %s", func.__name__, e)
            return RepairResult(success=False, error=str(e))

    return wrapper


def _load_stack(config: PrstackConfig, cwd: Optional[Path]) -> _Stack:
    branch = require_branch(cwd=cwd)
    require_clean_working_tree(cwd=cwd)
    base = get_merge_base(config.trunk_ref, cwd=cwd)
    head = get_full_sha("HEAD", cwd=cwd)
    commits = get_stack_commits_with_trailers(config.trunk_ref, cwd=cwd)
    return _Stack(branch=branch, base=base, head=head, commits=commits)


def _short(commit_hash: str) -> str:
    return commit_hash[:SHORT_HASH_LENGTH]


def _carries_group(commit: CommitInfo, group_id: str) -> bool:
    return any(commit.trailers.get(key) == group_id for key in _GROUP_ID_TRAILERS)


def _group_ids_in(commits: list[CommitInfo]) -> list[str]:
    group_ids: list[str] = []
    for commit in commits:
        for key in _GROUP_ID_TRAILERS:
            value = commit.trailers.get(key)
            if value and value not in group_ids:
                group_ids.append(value)
    return group_ids


def _find_commit(stack: _Stack, ref: str) -> Optional[CommitInfo]:
    """Find a stack commit by commit id or unique hash prefix."""
    if not ref:
        return None
    for commit in stack.commits:
        if commit.trailers.get(COMMIT_ID_TRAILER) == ref:
            return commit
    matches = [commit for commit in stack.commits if commit.hash.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _ungrouped_message(commit: CommitInfo) -> str:
    return remove_trailers(commit.message, GROUP_TRAILERS)


def _grouped_message(commit: CommitInfo, group_id: str, cwd: Optional[Path]) -> str:
    return add_trailers(_ungrouped_message(commit), {GROUP_TRAILER: group_id}, cwd=cwd)


def _rewrite_messages(
    stack: _Stack, rewrites: dict[str, str], cwd: Optional[Path], reason: str
) -> None:
    """Apply message changes in place, keeping order and trees."""
    current = {commit.hash: commit.message for commit in stack.commits}
    changed = {h: message for h, message in rewrites.items() if message != current[h]}
    if not changed:
        logger.debug("No commit messages changed, nothing to rewrite")
        return

    result = rewrite_commit_chain(stack.hashes, changed, cwd=cwd)
    finalize_rewrite(stack.branch, stack.tip, result.new_tip, cwd=cwd, reason=reason)
    logger.info("Rewrote %d commit message(s) on %s", len(changed), stack.branch)


def _reorder(
    stack: _Stack,
    order: list[str],
    rewrites: dict[str, str],
    cwd: Optional[Path],
    reason: str,
) -> RepairResult:
    """Replay the stack in a new order, moving the branch only on success."""
    overlaps = predict_reorder_overlaps(stack.hashes, order, cwd=cwd)
    for (earlier, later), paths in overlaps.items():
        logger.info(
            "Moving %s ahead of %s, both touch: %s", _short(earlier), _short(later), ", ".join(paths)
        )

    result = replay_commits(stack.base, order, rewrites, cwd=cwd)
    if not result.ok:
        files = result.conflict_files or parse_conflict_output(result.conflict_info)
        if not files:
            for pair, paths in overlaps.items():
                if result.conflict_commit in pair:
                    files = paths
                    break
        logger.debug("Reorder stopped at %s, conflicting files: %s", result.conflict_commit, files)
        return RepairResult(
            success=False,
            error=(
                f"Conflict while moving commit {_short(result.conflict_commit)}. "
                "The stack was left unchanged."
            ),
            conflict_file=files[0] if files else None,
        )

    finalize_rewrite(stack.branch, stack.tip, result.new_tip, cwd=cwd, reason=reason)
    logger.info("Reordered %d commit(s) on %s", len(order), stack.branch)
    return RepairResult(success=True)


def _not_found(group_id: str) -> RepairResult:
    return RepairResult(success=False, error=f'Group "{group_id}" not found in stack')


def _group_positions(group_ids: list[Optional[str]], group_id: str) -> list[int]:
    return [i for i, value in enumerate(group_ids) if value == group_id]


def _is_contiguous(positions: list[int]) -> bool:
    return not positions or positions[-1] - positions[0] == len(positions) - 1


@_repair_operation
def add_group_trailers(
    commit: str,
    group_id: str,
    title: Optional[str] = None,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Tag a commit as a member of a group, optionally storing the group title.

    Any group trailer the commit already carries is replaced. The commit must
    sit directly before or after the group's current members, and leaving its
    old group must not split that group.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    target = _find_commit(stack, commit)
    if target is None:
        return RepairResult(success=False, error=f"Commit {commit} not found in stack")

    current = [c.trailers.get(GROUP_TRAILER) for c in stack.commits]
    index = stack.hashes.index(target.hash)
    projected = list(current)
    projected[index] = group_id

    if not _is_contiguous(_group_positions(projected, group_id)):
        return RepairResult(
            success=False,
            error=(
                f'Commit {_short(target.hash)} is not next to group "{group_id}". '
                "Use extend_group to take in the commits in between."
            ),
        )
    previous = current[index]
    if (
        previous
        and previous != group_id
        and _is_contiguous(_group_positions(current, previous))
        and not _is_contiguous(_group_positions(projected, previous))
    ):
        return RepairResult(
            success=False,
            error=f'Taking commit {_short(target.hash)} out of group "{previous}" would split it',
        )

    _rewrite_messages(
        stack,
        {target.hash: _grouped_message(target, group_id, cwd)},
        cwd,
        reason=f"prstack: add {_short(target.hash)} to {group_id}",
    )
    if title is not None:
        set_group_title(group_id, title, config, cwd=cwd)
    return RepairResult(success=True)


@_repair_operation
def remove_group_trailers(
    commit: str,
    group_id: str,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Remove a commit from a group, keeping its commit id.

    A member from the middle of the group is moved to just after the group's
    last member, so the rest of the group stays contiguous. That move can
    conflict, in which case nothing is changed. The stored title is deleted
    once no commit carries the group any more.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    target = _find_commit(stack, commit)
    if target is None:
        return RepairResult(success=False, error=f"Commit {commit} not found in stack")
    if not _carries_group(target, group_id):
        return RepairResult(
            success=False,
            error=f'Commit {_short(target.hash)} is not in group "{group_id}"',
        )

    rewrites = {target.hash: _ungrouped_message(target)}
    reason = f"prstack: remove {_short(target.hash)} from {group_id}"
    positions = [i for i, c in enumerate(stack.commits) if _carries_group(c, group_id)]
    index = stack.hashes.index(target.hash)

    if positions[0] < index < positions[-1]:
        order = [h for h in stack.hashes if h != target.hash]
        order.insert(order.index(stack.hashes[positions[-1]]) + 1, target.hash)
        result = _reorder(stack, order, rewrites, cwd, reason=reason)
        if not result.success:
            return result
    else:
        _rewrite_messages(stack, rewrites, cwd, reason=reason)

    remaining = [c for c in stack.commits if c.hash != target.hash and _carries_group(c, group_id)]
    if not remaining:
        delete_group_titles([group_id], config, cwd=cwd)
    return RepairResult(success=True)


@_repair_operation
def extend_group(
    commit: str,
    group_id: str,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Tag every commit from the group's first member through commit.

    Commits already in another group are never absorbed.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    positions = [
        i for i, c in enumerate(stack.commits) if c.trailers.get(GROUP_TRAILER) == group_id
    ]
    if not positions:
        return _not_found(group_id)

    target = _find_commit(stack, commit)
    if target is None:
        return RepairResult(success=False, error=f"Commit {commit} not found in stack")

    end = stack.hashes.index(target.hash)
    if end < positions[0]:
        return RepairResult(
            success=False,
            error=f'Commit {_short(target.hash)} comes before the start of group "{group_id}"',
        )

    rewrites: dict[str, str] = {}
    for member in stack.commits[positions[0]:end + 1]:
        current = member.trailers.get(GROUP_TRAILER)
        if current == group_id:
            continue
        if current:
            return RepairResult(
                success=False,
                error=f'Commit {_short(member.hash)} belongs to group "{current}"',
            )
        rewrites[member.hash] = _grouped_message(member, group_id, cwd)

    _rewrite_messages(stack, rewrites, cwd, reason=f"prstack: extend {group_id}")
    return RepairResult(success=True)


@_repair_operation
def merge_split_group(
    group_id: str,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Make a split group contiguous again.

    All members move to the position of the first member, oldest first, and
    the commits that interrupted the group follow it in their original order.
    The first member's subject becomes the title when none is stored.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    members = [c for c in stack.commits if c.trailers.get(GROUP_TRAILER) == group_id]
    if not members:
        return _not_found(group_id)

    member_hashes = {c.hash for c in members}
    first = stack.hashes.index(members[0].hash)
    order = (
        stack.hashes[:first]
        + [c.hash for c in members]
        + [h for h in stack.hashes[first:] if h not in member_hashes]
    )

    if order != stack.hashes:
        result = _reorder(stack, order, {}, cwd, reason=f"prstack: merge split group {group_id}")
        if not result.success:
            return result

    if group_id not in read_group_titles(config, cwd=cwd):
        set_group_title(group_id, members[0].subject, config, cwd=cwd)
    return RepairResult(success=True)


@_repair_operation
def dissolve_group(
    group_id: str,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Strip a group's trailers from every member and forget its title.

    Members keep their commit ids and become singles. Other groups are left
    alone.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    members = [c for c in stack.commits if _carries_group(c, group_id)]
    if not members:
        return _not_found(group_id)

    _rewrite_messages(
        stack,
        {c.hash: _ungrouped_message(c) for c in members},
        cwd,
        reason=f"prstack: dissolve {group_id}",
    )
    delete_group_titles([group_id], config, cwd=cwd)
    return RepairResult(success=True)


@_repair_operation
def remove_all_group_trailers(
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Strip every group trailer in the stack and drop the titles of those groups."""
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    tagged = [c for c in stack.commits if any(key in c.trailers for key in GROUP_TRAILERS)]
    if not tagged:
        return RepairResult(success=True)

    group_ids = _group_ids_in(stack.commits)
    _rewrite_messages(
        stack,
        {c.hash: _ungrouped_message(c) for c in tagged},
        cwd,
        reason="prstack: remove all group trailers",
    )
    delete_group_titles(group_ids, config, cwd=cwd)
    return RepairResult(success=True)


class _SpecResolver:
    """Resolves group spec references to stack commit hashes.

    A reference is first matched against the stack as if nothing were grouped
    (commit ids and hashes), then against group ids, which expand to every
    member of the group.
    """

    def __init__(self, commits: list[CommitInfo]):
        self.commits = commits
        ungrouped = [
            CommitInfo(
                hash=c.hash,
                subject=c.subject,
                body=c.body,
                trailers={k: v for k, v in c.trailers.items() if k not in GROUP_TRAILERS},
                message=c.message,
            )
            for c in commits
        ]
        self.commit_units = detect_pr_units(ungrouped)

        members: dict[str, list[str]] = {}
        for commit in commits:
            group_id = commit.trailers.get(GROUP_TRAILER)
            if group_id:
                members.setdefault(group_id, []).append(commit.hash)
        self.group_units = [
            PRUnit(type="group", id=group_id, title=None, commits=hashes)
            for group_id, hashes in members.items()
        ]

    def resolve(self, ref: str, context: str) -> list[str]:
        result = resolve_identifier(ref, self.commit_units, self.commits)
        if not result.ok and result.error == "not-found":
            result = resolve_identifier(ref, self.group_units, [])

        if result.ok:
            return list(result.unit.commits)
        if result.error == "ambiguous":
            raise GroupSpecError(
                f"Ambiguous commit reference in {context}: {ref} "
                f"(matches: {', '.join(result.matches)})"
            )
        raise GroupSpecError(f"Unknown commit reference in {context}: {ref}")


def _resolve_order(spec: GroupSpec, stack: _Stack, resolver: _SpecResolver) -> list[str]:
    if spec.order is None:
        return stack.hashes

    order: list[str] = []
    for ref in spec.order:
        for commit_hash in resolver.resolve(ref, "order"):
            if commit_hash in order:
                raise GroupSpecError(f"Commit {_short(commit_hash)} appears more than once in order")
            order.append(commit_hash)

    missing = [h for h in stack.hashes if h not in order]
    if missing:
        raise GroupSpecError(
            "order must list every commit in the stack, missing: "
            + ", ".join(_short(h) for h in missing)
        )
    return order


def _resolve_groups(
    spec: GroupSpec, order: list[str], resolver: _SpecResolver
) -> list[tuple[str, list[str]]]:
    """Resolve each group's members and check they are adjacent in order."""
    assigned: set[str] = set()
    groups: list[tuple[str, list[str]]] = []

    for definition in spec.groups:
        context = f'group "{definition.name}"'
        hashes: list[str] = []
        for ref in definition.commits:
            for commit_hash in resolver.resolve(ref, context):
                if commit_hash not in hashes:
                    hashes.append(commit_hash)

        if not hashes:
            raise GroupSpecError(f'Group "{definition.name}" has no commits')
        for commit_hash in hashes:
            if commit_hash in assigned:
                raise GroupSpecError(
                    f"Commit {_short(commit_hash)} is assigned to more than one group"
                )
        assigned.update(hashes)

        positions = sorted(order.index(h) for h in hashes)
        if positions[-1] - positions[0] != len(positions) - 1:
            raise GroupSpecError(f'Group "{definition.name}" has non-contiguous commits')

        groups.append((definition.name, hashes))

    return groups


@_repair_operation
def apply_group_spec(
    spec: GroupSpec,
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Reorder the stack and assign groups in one pass.

    Existing group trailers are replaced, so commits not named by any group
    become singles. Each group gets a fresh id derived from its name, and the
    name is stored as its title.

    Raises:
        GroupSpecError: If a reference is unknown or ambiguous, the order is
            incomplete, or a group would not be contiguous. Nothing has been
            changed when this is raised.
    """
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)
    if not stack.commits:
        return RepairResult(success=False, error="No commits in stack")

    resolver = _SpecResolver(stack.commits)
    order = _resolve_order(spec, stack, resolver)
    groups = _resolve_groups(spec, order, resolver)

    new_titles: dict[str, str] = {}
    group_of: dict[str, str] = {}
    for name, hashes in groups:
        group_id = generate_group_id(name)
        new_titles[group_id] = name
        for commit_hash in hashes:
            group_of[commit_hash] = group_id

    rewrites: dict[str, str] = {}
    for commit in stack.commits:
        group_id = group_of.get(commit.hash)
        if group_id:
            message = _grouped_message(commit, group_id, cwd)
        else:
            message = _ungrouped_message(commit)
        if message != commit.message:
            rewrites[commit.hash] = message

    if order != stack.hashes:
        result = _reorder(stack, order, rewrites, cwd, reason="prstack: apply group spec")
        if not result.success:
            return result
    else:
        _rewrite_messages(stack, rewrites, cwd, reason="prstack: apply group spec")

    old_group_ids = _group_ids_in(stack.commits)
    if old_group_ids or new_titles:
        titles = read_group_titles(config, cwd=cwd)
        for group_id in old_group_ids:
            titles.pop(group_id, None)
        titles.update(new_titles)
        write_group_titles(titles, config, cwd=cwd)

    return RepairResult(success=True)


@_repair_operation
def inject_missing_ids(
    config: Optional[PrstackConfig] = None,
    cwd: Optional[Path] = None,
) -> RepairResult:
    """Add a commit id trailer to every stack commit that lacks one."""
    config = config or load_config(cwd)
    stack = _load_stack(config, cwd)

    rewrites = {
        c.hash: add_trailers(c.message, {COMMIT_ID_TRAILER: generate_commit_id()}, cwd=cwd)
        for c in stack.commits
        if not c.trailers.get(COMMIT_ID_TRAILER)
    }
    _rewrite_messages(stack, rewrites, cwd, reason="prstack: add commit ids")
    return RepairResult(success=True)
