from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Set, Tuple, Union


# ============================================================
# SLOT VALUES
# ============================================================

@dataclass(frozen=True)
class Unknown:
    """
    A value was named but the schema does not recognize it.

    Distinct from absence (``None``) and from any legitimate string,
    so a schema value spelled "UNKNOWN" is still an ordinary value.
    """

    raw: Optional[str] = None

    def __str__(self) -> str:
        return self.raw or "UNKNOWN"


UNKNOWN = Unknown()

# str | tuple of str/Unknown | Unknown | None
SlotValue = Union[None, str, Unknown, Tuple[Union[str, Unknown], ...]]


def is_unknown(value) -> bool:
    return isinstance(value, Unknown)


def as_tuple(value) -> Tuple:
    """Scalar-or-set → ordered tuple. Absent → ()."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return (value,)


def as_set(value) -> Set:
    return set(as_tuple(value))


def collapse(values: Iterable):
    """
    Ordered, de-duplicated values → scalar when exactly one member,
    tuple otherwise, None when empty.
    """
    unique = []
    for v in values:
        if v not in unique:
            unique.append(v)

    if not unique:
        return None
    if len(unique) == 1:
        return unique[0]
    return tuple(unique)


def contains_unknown(value) -> bool:
    return any(is_unknown(v) for v in as_tuple(value))


def format_value(value) -> str:
    """Human form used in response lines: read / read, delete."""
    return ", ".join(str(v) for v in as_tuple(value))


# ============================================================
# THREE-STATE PATCH ENTRIES
# ============================================================

class PatchMarker(Enum):
    UNSET = "unset"      # extractor has no opinion this turn
    CLEARED = "cleared"  # extractor explicitly reset the field


UNSET = PatchMarker.UNSET
CLEARED = PatchMarker.CLEARED
