"""Busyness — Library Registry.

The libraries we track and the areas each one reports. The backend emits a
flat ``<area>_count`` / ``<area>_percent`` pair per area, so this table is the
only place that knows which areas a library has. Everything downstream works
on the normalized ``areas`` mapping.
"""

from enum import Enum
from typing import Dict, List


class Library(str, Enum):
    """A library building."""

    HILL = "hill"
    HUNT = "hunt"


LIBRARY_AREAS: Dict[Library, List[str]] = {
    Library.HILL: ["east", "tower", "west"],
    Library.HUNT: ["level2", "level3", "level4", "level5"],
}


def areas_for(library: Library) -> List[str]:
    """Area names reported for a library, in display order."""
    return list(LIBRARY_AREAS[library])


def parse_library(value: str) -> Library:
    """Resolve a library id such as ``"hill"``; raises ValueError if unknown."""
    try:
        return Library(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown library: {value!r}") from None


def display_name(library: Library) -> str:
    return library.value.capitalize()
