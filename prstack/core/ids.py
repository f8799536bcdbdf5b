"""Commit and group id generation."""

import secrets


def generate_commit_id() -> str:
    """Generate an 8-character lowercase hex id.

    32 bits is plenty for an active stack; ids leave the active set once
    their PRs merge.
    """
    return secrets.token_hex(4)


def generate_group_id(name: str = "group") -> str:
    """Generate a group id of the form <slug>-<8 hex chars>."""
    slug = "".join(ch if ch.isalnum() else "-" for ch in name.lower()).strip("-")
    slug = "-".join(part for part in slug.split("-") if part)[:24].rstrip("-")
    return f"{slug or 'group'}-{generate_commit_id()}"
