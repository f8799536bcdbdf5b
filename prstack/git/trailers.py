"""Commit message trailer codec.

Contains:
- parse_trailers: Parse the trailer block of a commit message
- add_trailers: Append trailers to a commit message
- remove_trailers: Drop trailers with the given keys from a commit message
"""

import re
from pathlib import Path
from typing import Iterable, Optional

from prstack.git.runner import run_git

_TRAILER_LINE_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9-]*)\s*:\s?(.*)$")


def parse_trailers(message: str, cwd: Optional[Path] = None) -> dict[str, str]:
    """Parse the trailer block of a commit message.

    Args:
        message: Full commit message.
        cwd: Repository to run git in.

    Returns:
        Mapping of trailer key to value. Keys are case-sensitive and the last
        occurrence of a key wins. Empty if the message has no trailer block.

    Raises:
        GitError: If git interpret-trailers fails.
    """
    if not message.strip():
        return {}

    output = run_git(["interpret-trailers", "--parse"], cwd=cwd, input=message)
    if not output:
        return {}

    trailers: dict[str, str] = {}
    for line in output.split("\n"):
        line = line.strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        if key:
            trailers[key] = value.strip()
    return trailers


def add_trailers(
    message: str, trailers: dict[str, str], cwd: Optional[Path] = None
) -> str:
    """Append trailers to a commit message.

    An existing trailer with the same key is replaced, so appending the same
    key twice leaves a single line.

    Args:
        message: Commit message, with or without a trailing newline.
        trailers: Trailers to add.
        cwd: Repository to run git in.

    Returns:
        The message with trailers, without trailing whitespace.

    Raises:
        GitError: If git interpret-trailers fails.
    """
    if not trailers:
        return message

    args = ["interpret-trailers", "--if-exists", "replace"]
    for key, value in trailers.items():
        args.extend(["--trailer", f"{key}: {value}"])

    normalized = message if message.endswith("\n") else message + "\n"
    return run_git(args, cwd=cwd, input=normalized)


def remove_trailers(message: str, keys: Iterable[str]) -> str:
    """Drop trailer lines whose key is in keys.

    Only the final paragraph is treated as the trailer block, and the subject
    paragraph is never touched. When the block ends up empty the blank lines
    separating it from the body are dropped as well.

    Args:
        message: Commit message.
        keys: Trailer keys to remove.

    Returns:
        The message without those trailers and without trailing newlines.
    """
    keys = set(keys)
    lines = message.rstrip("\n").split("\n")

    start = len(lines)
    while start > 0 and lines[start - 1].strip():
        start -= 1
    if start == 0:
        # Subject paragraph only
        return "\n".join(lines)

    head = lines[:start]
    tail = []
    for line in lines[start:]:
        match = _TRAILER_LINE_RE.match(line)
        if match and match.group(1) in keys:
            continue
        tail.append(line)

    if not tail:
        while head and not head[-1].strip():
            head.pop()

    return "\n".join(head + tail)
