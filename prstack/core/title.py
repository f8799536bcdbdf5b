"""Display titles for PR units."""

from prstack.core.models import PRUnit


def resolve_unit_title(unit: PRUnit) -> str:
    """Resolve the display title for a PR unit.

    Singles carry their commit subject as title. Groups use the stored title,
    falling back to the first member's subject.
    """
    if unit.title:
        return unit.title
    if unit.subjects:
        return unit.subjects[0]
    return "Untitled"


def has_stored_title(unit: PRUnit) -> bool:
    """Check whether the unit has a stored title (an empty string counts)."""
    return unit.title is not None
