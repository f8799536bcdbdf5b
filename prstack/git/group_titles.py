"""Group title storage in a git ref.

Titles are kept as a JSON object blob referenced by
refs/<branch_prefix>/<namespace>/group-titles, outside the commit history.
Renaming a group therefore needs no rebase, and a title survives its group's
trailers being stripped.

Contains:
- group_titles_ref: Ref name for a configuration
- read_group_titles / write_group_titles: Whole-mapping access
- get_group_title / set_group_title: Single-entry access
- delete_group_titles: Drop several entries
- purge_orphaned_titles: Drop entries for groups no longer in the stack
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from prstack.core.models import GroupTitles
from prstack.git.runner import run_git, try_git

if TYPE_CHECKING:
    from prstack.config import PrstackConfig

logger = logging.getLogger(__name__)


def group_titles_ref(config: "PrstackConfig") -> str:
    return config.group_titles_ref


def read_group_titles(config: "PrstackConfig", cwd: Optional[Path] = None) -> GroupTitles:
    """Read every stored group title.

    Returns:
        Mapping of group id to title. Empty when the ref does not exist or
        does not hold a JSON object of strings.
    """
    ref = group_titles_ref(config)
    result = try_git(["cat-file", "blob", ref], cwd=cwd)
    if result.returncode != 0 or not result.stdout.strip():
        return {}

    try:
        parsed = json.loads(result.stdout)
    except json.JSONDecodeError:
        logger.warning("Group titles ref %s contains invalid JSON, ignoring it", ref)
        return {}

    if not isinstance(parsed, dict):
        logger.warning("Group titles ref %s does not hold a JSON object, ignoring it", ref)
        return {}

    return {str(key): value for key, value in parsed.items() if isinstance(value, str)}


def write_group_titles(
    titles: GroupTitles, config: "PrstackConfig", cwd: Optional[Path] = None
) -> None:
    """Replace the stored titles with titles."""
    ref = group_titles_ref(config)
    blob = run_git(
        ["hash-object", "-w", "--stdin"],
        cwd=cwd,
        input=json.dumps(titles, indent=2, sort_keys=True),
    )
    run_git(["update-ref", ref, blob], cwd=cwd)
    logger.debug("Wrote %d group title(s) to %s", len(titles), ref)


def get_group_title(
    group_id: str, config: "PrstackConfig", cwd: Optional[Path] = None
) -> Optional[str]:
    return read_group_titles(config, cwd=cwd).get(group_id)


def set_group_title(
    group_id: str, title: str, config: "PrstackConfig", cwd: Optional[Path] = None
) -> None:
    titles = read_group_titles(config, cwd=cwd)
    titles[group_id] = title
    write_group_titles(titles, config, cwd=cwd)


def delete_group_titles(
    group_ids: Iterable[str], config: "PrstackConfig", cwd: Optional[Path] = None
) -> None:
    """Delete the titles of several groups. Unknown ids are ignored."""
    titles = read_group_titles(config, cwd=cwd)
    removed = False
    for group_id in group_ids:
        if titles.pop(group_id, None) is not None:
            removed = True
    if removed:
        write_group_titles(titles, config, cwd=cwd)


def purge_orphaned_titles(
    current_group_ids: Iterable[str], config: "PrstackConfig", cwd: Optional[Path] = None
) -> list[str]:
    """Remove titles of groups that are no longer present in the stack.

    Returns:
        The purged group ids.
    """
    titles = read_group_titles(config, cwd=cwd)
    current = set(current_group_ids)
    orphaned = [group_id for group_id in titles if group_id not in current]

    if orphaned:
        for group_id in orphaned:
            del titles[group_id]
        write_group_titles(titles, config, cwd=cwd)
        logger.debug("Purged orphaned group titles: %s", ", ".join(orphaned))

    return orphaned
