"""Git command runner and repository utilities.

Contains:
- run_git: Run a git command and return its output
- try_git: Run a git command without raising on a non-zero exit
- get_repo_root: Get the root directory of the current git repository
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from prstack.git.exceptions import GitError

logger = logging.getLogger(__name__)


def _build_env(env: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def run_git(
    args: list[str],
    cwd: Optional[Path] = None,
    input: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
    strip: bool = True,
) -> str:
    """Run a git command and return its output.

    Args:
        args: List of arguments to pass to git.
        cwd: Working directory to run git in (defaults to the process cwd).
        input: Text piped to git's stdin.
        env: Extra environment variables layered over os.environ.
        strip: Strip surrounding whitespace from the output.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd or ".")
    try:
        result = subprocess.run(
            ["git"] + args,
            capture_output=True,
            text=True,
            check=True,
            cwd=cwd,
            input=input,
            env=_build_env(env),
        )
        return result.stdout.strip() if strip else result.stdout
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitError(f"Git command failed: git {' '.join(args)}\n{stderr}")
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")


def try_git(
    args: list[str],
    cwd: Optional[Path] = None,
    input: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a git command and return the completed process, whatever its exit code.

    Used where a non-zero exit is an expected answer (missing refs, unset
    config keys, merge conflicts) rather than a failure.

    Raises:
        GitError: If git itself cannot be executed.
    """
    logger.debug("git %s (cwd=%s, unchecked)", " ".join(args), cwd or ".")
    try:
        return subprocess.run(
            ["git"] + args,
            capture_output=True,
            text=True,
            check=False,
            cwd=cwd,
            input=input,
            env=_build_env(env),
        )
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Get the root directory of the current git repository.

    Returns:
        Path to the repository root.

    Raises:
        GitError: If not in a git repository.
    """
    try:
        root = run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
        return Path(root)
    except GitError:
        raise GitError("Not in a git repository. Please run this command from within a git repo.")
