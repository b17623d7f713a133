"""
Checker severity thresholds.

A pipeline lists the severity levels its checker should act on as a comma
separated string of level names (e.g. "WARN, ERROR"). Each name maps to a bit
in the site's level table; the threshold is the bitwise OR of those bits.
"""

import re
from collections.abc import Mapping

_LEVEL_SEPARATOR = re.compile(r"\s*,\s*")


class UnknownSeverityLevel(ValueError):
    """A threshold names a level missing from the configured level table."""

    def __init__(self, level: str, known: list[str]):
        self.level = level
        self.known = known
        super().__init__(f"Unknown severity level '{level}'. Known levels: {', '.join(known)}")


def parse_levels(threshold: str) -> list[str]:
    """Split a threshold string into level names, dropping empty entries."""
    if not threshold or not threshold.strip():
        return []
    return [name for name in _LEVEL_SEPARATOR.split(threshold.strip()) if name]


def combine_levels(threshold: str, levels: Mapping[str, int]) -> int:
    """
    Combine the named levels in ``threshold`` into a single bitmask.

    Args:
        threshold: Comma separated level names.
        levels: Level name to bit value table.

    Returns:
        The bitwise OR of every named level, or 0 for an empty threshold.

    Raises:
        UnknownSeverityLevel: If a name is not in ``levels``.
    """
    mask = 0
    for name in parse_levels(threshold):
        if name not in levels:
            raise UnknownSeverityLevel(name, sorted(levels))
        mask |= levels[name]
    return mask
