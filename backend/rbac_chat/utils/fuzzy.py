import difflib
from typing import Iterable, Optional


def suggest(value: Optional[str], candidates: Iterable[str], cutoff: float = 0.6) -> Optional[str]:
    """
    Closest schema value for a misspelled name, or None.

    Only used to phrase "did you mean" hints; never to autocorrect a slot.
    """
    if not value:
        return None

    lookup = {c.lower(): c for c in candidates}
    matches = difflib.get_close_matches(value.lower(), list(lookup), n=1, cutoff=cutoff)
    return lookup[matches[0]] if matches else None
