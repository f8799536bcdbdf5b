"""Git boundary for prstack.

This package wraps every git subprocess the engine needs:
- exceptions: GitError, DetachedHeadError, DirtyWorkingTreeError
- runner: run_git, try_git, get_repo_root
- trailers: parse_trailers, add_trailers, remove_trailers
- queries: get_current_branch, require_branch, get_merge_base,
           get_stack_commits, get_stack_commits_with_trailers
- status: get_working_tree_status, require_clean_working_tree
- plumbing: rewrite_commit_chain, replay_commits, finalize_rewrite
- conflict: parse_conflict_output, get_commit_files, predict_reorder_overlaps
- group_titles: read_group_titles, write_group_titles, set_group_title,
                delete_group_titles, purge_orphaned_titles
"""

# Exceptions
from prstack.git.exceptions import (
    DetachedHeadError,
    DirtyWorkingTreeError,
    GitError,
)

# Runner utilities
from prstack.git.runner import (
    get_repo_root,
    run_git,
    try_git,
)

# Trailer codec
from prstack.git.trailers import (
    add_trailers,
    parse_trailers,
    remove_trailers,
)

# Repository queries
from prstack.git.queries import (
    get_commit_message,
    get_current_branch,
    get_full_sha,
    get_merge_base,
    get_stack_commits,
    get_stack_commits_with_trailers,
    is_detached_head,
    require_branch,
)

# Working tree status
from prstack.git.status import (
    WorkingTreeStatus,
    get_working_tree_status,
    require_clean_working_tree,
)

# History rewriting
from prstack.git.plumbing import (
    MergeTreeResult,
    RewriteResult,
    finalize_rewrite,
    merge_tree,
    replay_commits,
    rewrite_commit_chain,
)

# Conflicts
from prstack.git.conflict import (
    get_commit_files,
    parse_conflict_output,
    predict_reorder_overlaps,
)

# Group titles
from prstack.git.group_titles import (
    delete_group_titles,
    get_group_title,
    group_titles_ref,
    purge_orphaned_titles,
    read_group_titles,
    set_group_title,
    write_group_titles,
)


__all__ = [
    # Exceptions
    "DetachedHeadError",
    "DirtyWorkingTreeError",
    "GitError",
    # Runner
    "get_repo_root",
    "run_git",
    "try_git",
    # Trailers
    "add_trailers",
    "parse_trailers",
    "remove_trailers",
    # Queries
    "get_commit_message",
    "get_current_branch",
    "get_full_sha",
    "get_merge_base",
    "get_stack_commits",
    "get_stack_commits_with_trailers",
    "is_detached_head",
    "require_branch",
    # Status
    "WorkingTreeStatus",
    "get_working_tree_status",
    "require_clean_working_tree",
    # Plumbing
    "MergeTreeResult",
    "RewriteResult",
    "finalize_rewrite",
    "merge_tree",
    "replay_commits",
    "rewrite_commit_chain",
    # Conflicts
    "get_commit_files",
    "parse_conflict_output",
    "predict_reorder_overlaps",
    # Group titles
    "delete_group_titles",
    "get_group_title",
    "group_titles_ref",
    "purge_orphaned_titles",
    "read_group_titles",
    "set_group_title",
    "write_group_titles",
]
