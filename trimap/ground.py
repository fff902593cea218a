"""Ground type definitions.

Pure data module. Ground types are a small closed set; the store treats
them uniformly and only agent movement cares that WATER is impassable.
Colors are the RGB hex values renderers use for each type.
"""

from __future__ import annotations

from enum import Enum


class GroundType(str, Enum):
    GRASS = "GRASS"
    WATER = "WATER"
    SAND = "SAND"
    ROCK = "ROCK"
    WOODS = "WOODS"

    @staticmethod
    def parse(value: str | GroundType) -> GroundType:
        """Coerce a wire string (or an existing member) to a GroundType.

        Raises ValueError for unknown names.
        """
        if isinstance(value, GroundType):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Ground type must be a string, got {value!r}")
        try:
            return GroundType(value.upper())
        except ValueError:
            raise ValueError(f"Unknown ground type: {value!r}") from None


GROUND_TYPE_IDS: list[GroundType] = list(GroundType)

GROUND_TYPE_COLORS: dict[GroundType, int] = {
    GroundType.GRASS: 0x90EE90,
    GroundType.WATER: 0x4169E1,
    GroundType.SAND: 0xF4A460,
    GroundType.ROCK: 0x808080,
    GroundType.WOODS: 0x006400,
}

_UNKNOWN_COLOR = 0xFF0000


def ground_type_color(ground_type: GroundType | None) -> int:
    """Render color for a ground type; red for unknown / missing."""
    if ground_type is None:
        return _UNKNOWN_COLOR
    return GROUND_TYPE_COLORS.get(ground_type, _UNKNOWN_COLOR)
