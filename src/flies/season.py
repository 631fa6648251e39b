"""
Season Ranges

A fly's season is stored as a start and end month (1-12). Ranges may cross
the December/January boundary: start=11, end=2 means November through
February.
"""

from typing import List, Optional

MONTH_NAMES = ["", "Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Applied when a classified fly has no season range yet
DEFAULT_SEASON_START = 3
DEFAULT_SEASON_END = 9


def validate_month(month: int, field: str = "month") -> int:
    """Raise ValueError unless month is an integer 1-12."""
    if isinstance(month, bool) or not isinstance(month, int):
        raise ValueError(f"{field} must be an integer month, got {month!r}")
    if not 1 <= month <= 12:
        raise ValueError(f"{field} must be between 1 and 12, got {month}")
    return month


def is_active_in_month(start: int, end: int, month: int) -> bool:
    """
    Check if a month falls inside a season range.

    Examples:
        >>> is_active_in_month(3, 9, 6)
        True
        >>> is_active_in_month(11, 2, 1)  # wraps over new year
        True
        >>> is_active_in_month(11, 2, 6)
        False
    """
    validate_month(start, "season_start")
    validate_month(end, "season_end")
    validate_month(month)

    if start <= end:
        return start <= month <= end
    # Wrap-around case: Nov to Feb
    return month >= start or month <= end


def active_months(start: int, end: int) -> List[int]:
    """All months covered by a range, in calendar order."""
    return [m for m in range(1, 13) if is_active_in_month(start, end, m)]


def describe_season_range(start: Optional[int], end: Optional[int]) -> Optional[str]:
    """Short label like 'Nov-Feb', or None when the range is unset."""
    if start is None or end is None:
        return None
    return f"{MONTH_NAMES[start]}-{MONTH_NAMES[end]}"
