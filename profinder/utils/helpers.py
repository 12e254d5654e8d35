"""
Helper functions for common operations.
Provides pair keys, set-valued list helpers, and UTC timestamps.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional


PAIR_SEPARATOR = "|"


def pair_key(user_a: str, user_b: str) -> str:
    """
    Build the canonical key for an unordered pair of users.

    Args:
        user_a: First user ID
        user_b: Second user ID

    Returns:
        Key that is identical for (a, b) and (b, a)

    Example:
        >>> pair_key("u2", "u1")
        'u1|u2'
    """
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}{PAIR_SEPARATOR}{second}"


def add_to_set(values: Optional[Iterable[str]], additions: Iterable[str]) -> List[str]:
    """
    Add items to a list used as a set, keeping the original order.

    Example:
        >>> add_to_set(["a", "b"], ["b", "c"])
        ['a', 'b', 'c']
    """
    result = list(values or [])
    for item in additions:
        if item not in result:
            result.append(item)
    return result


def remove_from_set(values: Optional[Iterable[str]], removals: Iterable[str]) -> List[str]:
    """
    Remove items from a list used as a set.

    Example:
        >>> remove_from_set(["a", "b", "c"], ["b", "x"])
        ['a', 'c']
    """
    removals = set(removals)
    return [item for item in (values or []) if item not in removals]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert a datetime to ISO 8601 with a 'Z' suffix.

    Naive datetimes (SQLite returns these) are treated as UTC.

    Example:
        >>> to_iso_utc(datetime(2025, 12, 16, 11, 30))
        '2025-12-16T11:30:00Z'
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat().replace("+00:00", "Z")
