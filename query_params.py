"""
Query parameter parsing shared by the selector, the leaderboard and the routes.
"""

import re

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def parse_int(value, default=None):
    """
    Read the leading integer of a query value.

    '7' -> 7, '2.5' -> 2, '12abc' -> 12. Values with no leading digits
    return the default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value

    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))
